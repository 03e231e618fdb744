import sys

from ipv6probe.measurement.ipv6 import main


if __name__ == '__main__':
    sys.exit(main())
