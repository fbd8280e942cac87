"""
TMD2772 ambient light + proximity sensor (I2C, 7-bit address 0x39).

Register access (checked against the AMS TMD2772 datasheet):
- Every register byte on the wire carries the COMMAND bit (0x80).
- Config writes are 2 bytes: [reg | 0x80, value].
- Data is read as one block starting at C0DATAL (0x14):
  C0DATAL, C0DATAH, C1DATAL, C1DATAH, PDATAL, PDATAH (little-endian words).

Lux uses the dual-channel open-air formula with CPL = ATIME_ms / 20.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Tuple

from adafruit_bus_device.i2c_device import I2CDevice

log = logging.getLogger(__name__)

# ---------------- Register map ----------------

DEFAULT_ADDRESS = 0x39

COMMAND_BIT = 0x80

REG_ENABLE  = 0x00
REG_ATIME   = 0x01
REG_PTIME   = 0x02
REG_WTIME   = 0x03
REG_CONTROL = 0x0F
REG_DATA    = 0x14       # C0DATAL; C1DATA and PDATA follow
DATA_LEN    = 6

# ENABLE bits
ENABLE_PON = 0x01        # power on
ENABLE_AEN = 0x02        # ALS
ENABLE_PEN = 0x04        # proximity
ENABLE_WEN = 0x08        # wait timer

# ---------------- Default configuration ----------------

ENABLE_VALUE  = ENABLE_PON | ENABLE_AEN | ENABLE_PEN | ENABLE_WEN   # 0x0F
ALS_TIME      = 0xFF     # 2.73 ms, 1 cycle
PROX_TIME     = 0xFF     # 2.73 ms
WAIT_TIME     = 0xFF     # 2.73 ms (WLONG = 0)
CONTROL_VALUE = 0x20     # 120 mA LED, prox on CH1 diode, 1x PGAIN, 1x AGAIN

INIT_SEQUENCE: Tuple[Tuple[int, int], ...] = (
    (REG_ENABLE,  ENABLE_VALUE),
    (REG_ATIME,   ALS_TIME),
    (REG_PTIME,   PROX_TIME),
    (REG_WTIME,   WAIT_TIME),
    (REG_CONTROL, CONTROL_VALUE),
)

# Power-up plus at least one full integration cycle
SETTLE_S = 1.0

# ---------------- Calibration ----------------

ATIME_STEP_MS = 2.73
GAIN_DIVISOR  = 20.0

# (ch0 weight, ch1 weight) per candidate formula
LUX_COEFFS = (
    (1.00, 1.75),
    (0.63, 1.00),
)


def integration_time_ms(time_byte: int) -> float:
    """ATIME/PTIME/WTIME byte -> integration time. 0xFF is one 2.73 ms cycle."""
    return ATIME_STEP_MS * (256 - time_byte)


# Tied to ALS_TIME and AGAIN above; recompute if either changes.
CPL = (integration_time_ms(ALS_TIME) * 1.0) / GAIN_DIVISOR

# ---------------- Errors ----------------

class TMD2772Error(RuntimeError):
    pass

class BusUnavailableError(TMD2772Error):
    """I2C bus could not be opened or the device did not ACK."""

class ConfigurationError(TMD2772Error):
    """A register write failed; the sensor state is unknown."""

class SampleReadError(TMD2772Error):
    """Data block read came back short or failed."""

# ---------------- Codec ----------------

def command(register: int) -> int:
    if not 0 <= register <= 0xFF:
        raise ValueError(f"register out of range: {register!r}")
    return register | COMMAND_BIT

def encode_write(register: int, value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"register value out of range: {value!r}")
    return bytes((command(register), value))

def encode_select(register: int) -> bytes:
    return bytes((command(register),))

def decode_sample(data) -> Tuple[int, int, int]:
    """
    Split the 6-byte data block into (ch0, ch1, proximity) counts.
    Anything other than exactly DATA_LEN bytes is a read error, never a partial result.
    """
    if data is None or len(data) != DATA_LEN:
        got = 0 if data is None else len(data)
        raise SampleReadError(f"Input/Output error: expected {DATA_LEN} bytes, got {got}")
    c0   = data[0] + (data[1] << 8)
    c1   = data[2] + (data[3] << 8)
    prox = data[4] + (data[5] << 8)
    return c0, c1, prox

# ---------------- Conversion ----------------

def compute_lux(c0: int, c1: int, cpl: float = CPL) -> float:
    """
    Larger of the two candidate formulas, only if strictly positive and strictly larger.
    Equal candidates (including both zero) give 0.0.
    """
    (a0, a1), (b0, b1) = LUX_COEFFS
    lux1 = (a0 * c0 - a1 * c1) / cpl
    lux2 = (b0 * c0 - b1 * c1) / cpl
    if lux1 > 0 and lux1 > lux2:
        return lux1
    if lux2 > 0 and lux2 > lux1:
        return lux2
    return 0.0

@dataclass
class Reading:
    lux: float
    proximity: float
    ch0: int
    ch1: int
    t: float = field(default_factory=time.monotonic)

def convert_sample(data, cpl: float = CPL) -> Reading:
    c0, c1, prox = decode_sample(data)
    return Reading(compute_lux(c0, c1, cpl), float(prox), c0, c1)

# ---------------- Driver ----------------

class TMD2772:
    """
    Thin register-level driver. `i2c` is a busio.I2C (or anything with the same
    lock/writeto/writeto_then_readfrom surface).
    """
    def __init__(self, i2c, address=DEFAULT_ADDRESS, cpl=CPL):
        try:
            self.dev = I2CDevice(i2c, address)
        except ValueError as e:
            # I2CDevice probe: nothing ACKed the address
            raise BusUnavailableError(f"TMD2772 not found at 0x{address:02X}: {e}") from e
        self.address = address
        self.cpl = cpl

    def write_register(self, register: int, value: int):
        buf = encode_write(register, value)
        log.debug("write 0x%02X <- 0x%02X", buf[0], buf[1])
        try:
            with self.dev as dev:
                dev.write(buf)
        except OSError as e:
            raise ConfigurationError(
                f"write to register 0x{register:02X} (value 0x{value:02X}) failed: {e}") from e

    def configure(self, sequence=INIT_SEQUENCE):
        for register, value in sequence:
            self.write_register(register, value)
        log.info("TMD2772 at 0x%02X configured (%d registers)", self.address, len(sequence))

    def settle(self, seconds=SETTLE_S):
        time.sleep(seconds)

    def read_block(self, register: int, length: int) -> bytes:
        """Select `register` then read `length` bytes, under one bus lock."""
        buf = bytearray(length)
        try:
            with self.dev as dev:
                dev.write_then_readinto(encode_select(register), buf)
        except OSError as e:
            raise SampleReadError(f"Input/Output error: {e}") from e
        return bytes(buf)

    def read_raw(self) -> bytes:
        data = self.read_block(REG_DATA, DATA_LEN)
        log.debug("raw %s", data.hex())
        return data

    def read(self) -> Reading:
        return convert_sample(self.read_raw(), self.cpl)
