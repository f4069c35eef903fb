"""Allow ``python -m liveprof``."""

from liveprof.cli import main

if __name__ == "__main__":
    main()
