"""Entry point for 'python -m tablebase' command."""

from tablebase.cli import main

if __name__ == "__main__":
    main()
