"""Allow running vioinject as ``python -m vioinject``."""

import sys

from vioinject.cli import main


if __name__ == "__main__":
    sys.exit(main())
