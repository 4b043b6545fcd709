#!/usr/bin/env python3
"""Nagios check for an analog pressure sensor on an ADS1115 input.

Reads one input, converts it to bar with the 4-20 mA calibration and
prints a single plugin line. Exit status: 0 OK, 2 CRITICAL (outside
-m/-M), 1 for usage or acquisition errors.

Usage examples:
  check_pressure.py -m 1.5 -M 6.0
  check_pressure.py -v -d /dev/i2c-0 -a 49 -i 2 -l 0 -h 16 -m 1.5 -M 6.0
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass

from ads1115 import ADS1115Error, AcquisitionSettings, DEFAULT_ADDRESS, DEFAULT_CHANNEL, DEFAULT_DEVICE, read_raw
from calibration import (
    Calibration, DEFAULT_HIGH, DEFAULT_LOW, DEFAULT_MAX_RAW, DEFAULT_MIN_RAW, volts_per_step,
)

STATUS_OK = 0
STATUS_CRITICAL = 2
EXIT_FAILURE = 1

NOTES = """\
Note:\t-a is in Hexadecimal and -A is Decimal.
\t -l is pressure in bar at 4ma (lowest reading)
\t -h is pressure in bar at 20ma (highest reading)"""


@dataclass(frozen=True)
class CheckSettings:
    acquisition: AcquisitionSettings
    minimum: float
    maximum: float
    low: float = DEFAULT_LOW
    high: float = DEFAULT_HIGH
    min_raw: float = DEFAULT_MIN_RAW
    max_raw: float = DEFAULT_MAX_RAW
    verbose: bool = False

    @property
    def probe(self) -> str:
        return f"{self.acquisition.device}:0x{self.acquisition.address:02x}"


class _Parser(argparse.ArgumentParser):
    # argparse exits with 2 by default, which would read as CRITICAL
    def error(self, message):
        self.print_usage(sys.stdout)
        print(NOTES)
        print(f"Error. {message}")
        sys.exit(EXIT_FAILURE)


def _fail(message: str):
    print(message)
    sys.exit(EXIT_FAILURE)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(description="ADS1115 pressure check", epilog=NOTES, add_help=False,
                formatter_class=argparse.RawDescriptionHelpFormatter)
    p.add_argument("--help", action="help", help="Show this help and exit")
    p.add_argument("-v", dest="verbose", action="store_true", help="Print additional info on what the program is doing")
    p.add_argument("-d", dest="device", default=DEFAULT_DEVICE, help=f"I2C device to open (default {DEFAULT_DEVICE})")
    p.add_argument("-a", dest="address", type=lambda x: int(x, 16), default=DEFAULT_ADDRESS,
                   help="Address of the ADS1115 in hex (default 48)")
    p.add_argument("-A", dest="address", type=int, help="Address of the ADS1115 in decimal (default 72)")
    p.add_argument("-i", dest="input", type=int, default=DEFAULT_CHANNEL, help="Input pin, 1-4 (default 1)")
    p.add_argument("-m", dest="minimum", type=float, help="Minimum pressure")
    p.add_argument("-M", dest="maximum", type=float, help="Maximum pressure")
    p.add_argument("-l", dest="low", type=float, default=DEFAULT_LOW, help="Pressure in bar at 4mA")
    p.add_argument("-h", dest="high", type=float, default=DEFAULT_HIGH, help="Pressure in bar at 20mA")
    p.add_argument("--min-raw", type=float, default=DEFAULT_MIN_RAW, help="Raw reading at 4mA")
    p.add_argument("--max-raw", type=float, default=DEFAULT_MAX_RAW, help="Raw reading at 20mA")
    p.add_argument("--max-polls", type=int, help="Give up after this many ready checks (default: wait forever)")
    return p


def parse_args(argv=None) -> CheckSettings:
    args = build_parser().parse_args(argv)

    if args.input < 1 or args.input > 4:
        _fail("Error. Input must be 1, 2, 3 or 4")
    if args.minimum is None or args.maximum is None:
        _fail("Error. Both -m and -M options must be present!")
    if args.min_raw == args.max_raw:
        _fail("Error. --min-raw and --max-raw must differ")
    if args.max_raw == 0:
        _fail("Error. --max-raw must not be 0")
    if args.max_polls is not None and args.max_polls < 1:
        _fail("Error. --max-polls must be at least 1")

    acquisition = AcquisitionSettings(device=args.device, address=args.address,
                                      channel=args.input, max_polls=args.max_polls)
    return CheckSettings(acquisition=acquisition, minimum=args.minimum, maximum=args.maximum,
                         low=args.low, high=args.high, min_raw=args.min_raw, max_raw=args.max_raw,
                         verbose=args.verbose)


def evaluate(settings: CheckSettings, pressure: float) -> tuple[int, str]:
    """Compare against -m/-M and build the plugin output line."""
    if pressure < settings.minimum:
        return STATUS_CRITICAL, (
            f"CRITICAL: Pressure on probe '{settings.probe}' is {pressure:4.3f} "
            f"which is below {settings.minimum:4.3f} | 'pressure'={pressure:4.4f}")
    if pressure > settings.maximum:
        return STATUS_CRITICAL, (
            f"CRITICAL: Pressure on probe '{settings.probe}' is {pressure:4.3f} "
            f"which is over {settings.maximum:4.3f} | 'pressure'={pressure:4.4f}")
    return STATUS_OK, f"OK: Pressure on probe '{settings.probe}' is {pressure:4.3f} | 'pressure'={pressure:4.3f}"


def make_dprint(verbose: bool):
    def dprint(*args, **kwargs):
        if verbose:
            print(*args, **kwargs)
    return dprint


def main(argv=None, transport=None) -> int:
    settings = parse_args(argv)
    dprint = make_dprint(settings.verbose)
    acq = settings.acquisition

    calibration = Calibration.from_points(settings.min_raw, settings.max_raw, settings.low, settings.high)
    vps = volts_per_step(settings.max_raw)

    dprint(f"DEBUG: Device {acq.device}, Address 0x{acq.address:02x} ({acq.address}), Input {acq.channel}")
    dprint(f"DEBUG: maxval {settings.max_raw:f}, minval {settings.min_raw:f}, "
           f"slope {calibration.slope:f}, constant {calibration.intercept:f}")

    try:
        raw = read_raw(acq, transport, debug=dprint)
    except ADS1115Error as e:
        print(f"Error: {e}")
        return EXIT_FAILURE

    pressure = calibration.pressure(raw)
    dprint(f"ANC{acq.channel - 1}: HEX 0x{raw:02x}, DEC {raw}, voltage {raw * vps:4.4f}, "
           f"pressure {pressure:4.3f} bar")

    status, line = evaluate(settings, pressure)
    print(line)
    return status


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
