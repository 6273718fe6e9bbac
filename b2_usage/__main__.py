"""Module entry point for the bucket usage audit."""
from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
