#!/usr/bin/env python3
"""
TMD2772 ambient light + proximity monitor (Raspberry Pi, I2C bus 1).

WIRING (Pi 4, BCM numbering):
  TMD2772 mini module: VIN->3V3, GND->GND, SCL->GPIO3/pin5, SDA->GPIO2/pin3
  (INT pin unused)

Flow: power on + configure -> settle 1 s -> read one sample -> print.
With --interval it keeps polling (300 ms by default) until Ctrl+C or --count.
"""

import sys, time, logging, argparse

# --- HW libs ---
import board, busio

from tmd2772 import (
    TMD2772, Reading, SETTLE_S,
    BusUnavailableError, ConfigurationError, SampleReadError,
)

log = logging.getLogger("tmd2772_monitor")

# ---------------- CONFIG (edit safely) ----------------

I2C_ADDRESS      = 0x39
SETTLE_TIME_S    = SETTLE_S     # must cover power-up + one integration cycle
POLL_INTERVAL_S  = 0.3
LOG_FORMAT       = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ---------------- Helpers ----------------

def open_bus():
    try:
        return busio.I2C(board.SCL, board.SDA)
    except (RuntimeError, ValueError, OSError) as e:
        raise BusUnavailableError(f"Cannot open I2C bus: {e}") from e

def format_report(reading: Reading):
    return [
        f"Ambient Light Luminance : {reading.lux:.2f} lux",
        f"Proximity of the Device : {reading.proximity:.2f}",
    ]

def sample_once(sensor: TMD2772) -> bool:
    try:
        reading = sensor.read()
    except SampleReadError as e:
        log.debug("sample failed: %s", e)
        print("Error : Input/Output error")
        return False
    for line in format_report(reading):
        print(line)
    return True

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Read lux and proximity from a TMD2772 over I2C.")
    p.add_argument("--interval", type=float, nargs="?", const=POLL_INTERVAL_S, default=None,
                   metavar="SECONDS", help=f"poll continuously (default period {POLL_INTERVAL_S}s)")
    p.add_argument("--count", type=int, default=None,
                   help="stop after this many samples when polling")
    p.add_argument("--settle", type=float, default=SETTLE_TIME_S, metavar="SECONDS",
                   help="wait after configuration before the first sample")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p.parse_args(argv)

# ---------------- Main ----------------

def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        i2c = open_bus()
    except BusUnavailableError as e:
        log.error("%s", e)
        print("Failed to open the bus.")
        return 1

    try:
        try:
            sensor = TMD2772(i2c, I2C_ADDRESS)
        except BusUnavailableError as e:
            log.error("%s", e)
            print("Failed to open the bus.")
            return 1

        try:
            sensor.configure()
        except ConfigurationError as e:
            log.error("configuration failed, not sampling: %s", e)
            return 1

        sensor.settle(args.settle)

        if args.interval is None:
            sample_once(sensor)
            return 0

        print(f"I2C address of the TMD2772: 0x{I2C_ADDRESS:02X}. Press Ctrl+C to stop.")
        taken = 0
        while args.count is None or taken < args.count:
            sample_once(sensor)
            taken += 1
            if args.count is None or taken < args.count:
                time.sleep(args.interval)
        return 0
    except KeyboardInterrupt:
        return 0
    finally:
        i2c.deinit()

if __name__ == "__main__":
    sys.exit(main())
