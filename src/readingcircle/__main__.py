"""Main entry point for the readingcircle package."""

from readingcircle.cli import main


if __name__ == "__main__":
    main()
