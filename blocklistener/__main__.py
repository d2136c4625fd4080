"""Allow running the listener as a module: python -m blocklistener."""

from blocklistener.runner import main

if __name__ == "__main__":
    main()
