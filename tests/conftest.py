import errno
import importlib
import sys
from unittest import mock

import pytest


class FakeI2C:
    """In-memory stand-in for busio.I2C with a single device on the bus."""

    def __init__(self, address=0x39, data=bytes(6)):
        self.address = address
        self.data = bytes(data)
        self.locked = False
        self.writes = []          # non-empty writeto() payloads
        self.transactions = []    # select bytes of writeto_then_readfrom()
        self.fail_write_at = None
        self.read_error = None
        self.deinited = False

    def try_lock(self):
        if self.locked:
            return False
        self.locked = True
        return True

    def unlock(self):
        self.locked = False

    def _ack(self, address):
        if address != self.address:
            raise OSError(errno.EREMOTEIO, "Remote I/O error")

    def writeto(self, address, buffer, *, start=0, end=None):
        self._ack(address)
        assert self.locked
        chunk = bytes(buffer[start:end])
        if not chunk:
            return  # address probe
        if self.fail_write_at == len(self.writes):
            raise OSError(errno.EIO, "Input/output error")
        self.writes.append(chunk)

    def readfrom_into(self, address, buffer, *, start=0, end=None):
        self._ack(address)

    def writeto_then_readfrom(self, address, out_buffer, in_buffer, *,
                              out_start=0, out_end=None, in_start=0, in_end=None):
        self._ack(address)
        assert self.locked
        self.transactions.append(bytes(out_buffer[out_start:out_end]))
        if self.read_error is not None:
            raise self.read_error
        in_end = len(in_buffer) if in_end is None else in_end
        for i in range(in_start, in_end):
            in_buffer[i] = self.data[i - in_start]

    def deinit(self):
        self.deinited = True


def sample_bytes(c0, c1, prox):
    return bytes((c0 & 0xFF, c0 >> 8, c1 & 0xFF, c1 >> 8, prox & 0xFF, prox >> 8))


@pytest.fixture
def fake_i2c():
    return FakeI2C()


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr("time.sleep", lambda s: calls.append(s))
    return calls


@pytest.fixture
def monitor(monkeypatch):
    # board/busio only resolve on a real Pi; swap in mocks before import
    monkeypatch.setitem(sys.modules, "board", mock.MagicMock(name="board"))
    monkeypatch.setitem(sys.modules, "busio", mock.MagicMock(name="busio"))
    monkeypatch.delitem(sys.modules, "tmd2772_monitor", raising=False)
    mod = importlib.import_module("tmd2772_monitor")
    yield mod
    sys.modules.pop("tmd2772_monitor", None)
