"""Allow ``python -m boxinit``."""

from boxinit.cli import main

if __name__ == "__main__":
    main()
