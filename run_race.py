import sys

from htop_gear.cli import main


if __name__ == "__main__":
    sys.exit(main())
