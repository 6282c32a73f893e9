#!/usr/bin/env python3
"""Example: connect to a CLICK PLC and read/write a few channels by name."""

import sys

from pyclick_modbus import ClickModbusDriver, SwitchState


def main() -> None:
    config = {"interface": {"network": {"host": "192.168.0.10", "port": 502}}}  # change to your PLC IP

    plc = ClickModbusDriver()
    if not plc.init(config) or not plc.open():
        print(f"Open failed: {plc.last_error}", file=sys.stderr)
        sys.exit(1)

    try:
        # Data register, signed 16-bit
        result = plc.read_int16("DS1")
        print(f"DS1 = {result.value}" if result else f"DS1 read failed: {result.error}")

        # Float register spanning two Modbus registers
        result = plc.read_float32("df1")
        print(f"DF1 = {result.value}" if result else f"DF1 read failed: {result.error}")

        # Block of outputs
        outputs = plc.read_discretes("Y1", 4)
        print(f"Y1..Y4 = {[s.value for s in outputs.value]}")

        # Write an output (example; uncomment if your PLC allows)
        # plc.write_discrete("Y1", SwitchState.ON)

        print(f"explain(df3): {plc.explain('df3')}")
    finally:
        plc.close()


if __name__ == "__main__":
    main()
