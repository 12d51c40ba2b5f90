import logging
import sys

import config
from vtsh.shell import Shell


def setup_logging():
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, config.LOG_LEVEL, logging.WARNING),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    )


def main():
    setup_logging()
    sys.exit(Shell().run())


if __name__ == "__main__":
    main()
