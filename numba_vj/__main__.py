import sys

from numba_vj.driver import main

if __name__ == "__main__":
    sys.exit(main())
