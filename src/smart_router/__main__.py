"""Allow ``python -m smart_router``."""

from smart_router import main

if __name__ == "__main__":
    main()
