"""
ads1115.py

Single-shot reader for one single-ended input of an ADS1115 (smbus2).

Sequence for one reading:
- open the /dev/i2c-* device and bind the slave address
- write the config register with the OS bit set to start a conversion
- poll the config register until the OS bit reads back as 1 (idle)
- point at the conversion register and read the 16-bit result

The bus handle is closed on every exit path once the device is open.
"""
from __future__ import annotations

import fcntl
import os
from dataclasses import dataclass
from typing import Callable

from smbus2 import SMBus
# smbus2 only binds addresses through its private _set_address, so the
# ioctl request number is taken from its module constants
from smbus2.smbus2 import I2C_SLAVE

DEFAULT_DEVICE = "/dev/i2c-1"  # Default i2c on Raspberry Pi
DEFAULT_ADDRESS = 0x48         # ADDR pin tied to GND
DEFAULT_CHANNEL = 1

# Register pointers
REG_CONVERSION = 0x00
REG_CONFIG = 0x01

# Config register fields, values before shifting into place
OS_START = 0b1            # bit 15: write 1 to start a single conversion
MUX_AIN0 = 0b100          # bits 14-12: single-ended AIN0..AIN3 vs GND are 100..111
PGA_6_144V = 0b000        # bits 11-9
MODE_SINGLE = 0b1         # bit 8: power-down single-shot mode
DR_128SPS = 0b100         # bits 7-5
COMP_MODE_TRAD = 0b0      # bit 4
COMP_POL_ACTVLOW = 0b0    # bit 3
COMP_LAT_LATCHING = 0b1   # bit 2
COMP_QUE_2 = 0b01         # bits 1-0: assert after two conversions

# Bit 7 of the first config byte read back; set once the device is idle
OS_READY = 0x80

# Largest raw value accepted before it is treated as invalid and zeroed
RAW_LIMIT = 32768


class ADS1115Error(Exception):
    """Base class for acquisition failures."""


class DeviceOpenError(ADS1115Error):
    pass


class AddressBindError(ADS1115Error):
    pass


class WriteError(ADS1115Error):
    pass


class ReadError(ADS1115Error):
    pass


class ConversionTimeoutError(ADS1115Error):
    """Raised when a poll limit is set and the conversion never finishes."""


def mux_for_channel(channel: int) -> int:
    """Map input 1-4 to the single-ended mux code for AIN0-AIN3."""
    if channel not in (1, 2, 3, 4):
        raise ValueError(f"Input must be 1, 2, 3 or 4, got {channel}")
    return MUX_AIN0 + channel - 1


def to_signed_16(v: int) -> int:
    return v if v < 0x8000 else v - 0x10000


def sanitize(raw: int) -> int:
    # single-ended readings are never negative; 32768 itself is let through
    if raw < 0 or raw > RAW_LIMIT:
        return 0
    return raw


@dataclass(frozen=True)
class ConversionConfig:
    mux: int
    start: int = OS_START
    pga: int = PGA_6_144V
    mode: int = MODE_SINGLE
    data_rate: int = DR_128SPS
    comp_mode: int = COMP_MODE_TRAD
    comp_pol: int = COMP_POL_ACTVLOW
    comp_lat: int = COMP_LAT_LATCHING
    comp_que: int = COMP_QUE_2

    @classmethod
    def for_channel(cls, channel: int) -> ConversionConfig:
        return cls(mux=mux_for_channel(channel))

    @property
    def word(self) -> int:
        return ((self.start & 0x1) << 15
                | (self.mux & 0x7) << 12
                | (self.pga & 0x7) << 9
                | (self.mode & 0x1) << 8
                | (self.data_rate & 0x7) << 5
                | (self.comp_mode & 0x1) << 4
                | (self.comp_pol & 0x1) << 3
                | (self.comp_lat & 0x1) << 2
                | (self.comp_que & 0x3))

    def to_bytes(self) -> bytes:
        """Config register value, MSB first."""
        return bytes([(self.word >> 8) & 0xFF, self.word & 0xFF])


@dataclass(frozen=True)
class AcquisitionSettings:
    device: str = DEFAULT_DEVICE
    address: int = DEFAULT_ADDRESS
    channel: int = DEFAULT_CHANNEL
    # None polls until the device reports ready, however long that takes
    max_polls: int | None = None


class I2CBus:
    """Raw read/write transport on an i2c-dev character device."""

    def __init__(self):
        self._bus: SMBus | None = None

    def open(self, path: str) -> None:
        # plain open only; SMBus(path) would also probe I2C_FUNCS and leak the fd if that fails
        bus = SMBus()
        bus.fd = os.open(path, os.O_RDWR)
        self._bus = bus

    def bind(self, address: int) -> None:
        fcntl.ioctl(self._bus.fd, I2C_SLAVE, address)

    def write(self, data: bytes) -> int:
        return os.write(self._bus.fd, data)

    def read(self, length: int) -> bytes:
        return os.read(self._bus.fd, length)

    def close(self) -> None:
        if self._bus is not None:
            self._bus.close()
            self._bus = None


def _reason(err: OSError) -> str:
    return err.strerror or str(err)


def _quiet(*args, **kwargs) -> None:
    pass


def _write(transport, data: bytes, what: str) -> None:
    try:
        count = transport.write(data)
    except OSError as e:
        raise WriteError(f"{what}: {_reason(e)}") from e
    if count != len(data):
        raise WriteError(f"{what}: wrote {count} of {len(data)} bytes")


def _read(transport, length: int, what: str) -> bytes:
    try:
        data = transport.read(length)
    except OSError as e:
        raise ReadError(f"{what}: {_reason(e)}") from e
    if len(data) != length:
        raise ReadError(f"{what}: read {len(data)} of {length} bytes")
    return data


def _wait_for_conversion(transport, max_polls: int | None) -> int:
    polls = 0
    while True:
        data = _read(transport, 2, "Read conversion")
        polls += 1
        if data[0] & OS_READY:
            return polls
        if max_polls is not None and polls >= max_polls:
            raise ConversionTimeoutError(f"Conversion not finished after {polls} polls")


def read_raw(settings: AcquisitionSettings, transport=None,
             debug: Callable[..., None] | None = None) -> int:
    """Take one single-shot reading and return the sanitized raw sample.

    transport defaults to I2CBus(). debug is a print-like callable for
    verbose tracing.
    """
    if transport is None:
        transport = I2CBus()
    if debug is None:
        debug = _quiet
    config = ConversionConfig.for_channel(settings.channel)

    try:
        transport.open(settings.device)
    except OSError as e:
        raise DeviceOpenError(f"Couldn't open device {settings.device}: {_reason(e)}") from e

    try:
        if not 0 <= settings.address <= 0x7F:
            raise AddressBindError(
                f"Couldn't find device on address: {settings.address} is not a 7-bit address")
        try:
            transport.bind(settings.address)
        except OSError as e:
            raise AddressBindError(f"Couldn't find device on address: {_reason(e)}") from e

        debug(f"DEBUG: config register 0x{config.word:04x}")
        _write(transport, bytes([REG_CONFIG]) + config.to_bytes(), "Write to register 1")
        polls = _wait_for_conversion(transport, settings.max_polls)
        debug(f"DEBUG: conversion ready after {polls} poll(s)")

        _write(transport, bytes([REG_CONVERSION]), "Write register select")
        data = _read(transport, 2, "Read conversion")
    finally:
        transport.close()

    raw = to_signed_16(data[0] << 8 | data[1])
    value = sanitize(raw)
    if value != raw:
        debug(f"DEBUG: raw value {raw} out of range, using 0")
    return value
