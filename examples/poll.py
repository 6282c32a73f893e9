#!/usr/bin/env python3
"""Example: poll a block of discrete channels and a float register on an interval; stop on Ctrl+C."""

import sys
import time

from pyclick_modbus import TransportError, create_driver


def main() -> None:
    config = '{"interface": {"network": {"host": "192.168.0.10", "port": 502}}}'  # change to your PLC IP
    interval_s = 1.0

    plc = create_driver(config)
    if plc is None:
        print("Invalid configuration", file=sys.stderr)
        sys.exit(1)

    try:
        with plc:
            print(f"Polling X1..X8 and DF1 every {interval_s}s (Ctrl+C to stop)...")
            while True:
                inputs = plc.read_discretes("X1", 8)
                level = plc.read_float32("DF1")
                print([s.value for s in inputs.value], level.value)
                if not inputs or not level:
                    print(f"  last error: {plc.last_error}", file=sys.stderr)
                time.sleep(interval_s)
    except KeyboardInterrupt:
        print("\nStopped.")
    except TransportError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
