"""Entry point for python -m ces."""

from .cli import main


if __name__ == "__main__":
    main()
