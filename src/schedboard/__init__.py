# SPDX-License-Identifier: MIT

from schedboard.cleanup import register_cleanup
from schedboard.initialize import initialize
from schedboard.terminal.app import run


def main() -> None:
    initialize()
    register_cleanup()
    run()


if __name__ == "__main__":
    main()
