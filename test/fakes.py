"""Scripted stand-in for ads1115.I2CBus that records every call."""


class FakeBus:
    def __init__(self, reads=(), write_counts=None, open_error=None, bind_error=None):
        # reads: bytes to hand back in order, or OSError instances to raise
        self.reads = list(reads)
        self.write_counts = list(write_counts or [])
        self.open_error = open_error
        self.bind_error = bind_error
        self.calls = []
        self.opened = False
        self.closed = False

    def open(self, path):
        self.calls.append(("open", path))
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def bind(self, address):
        self.calls.append(("bind", address))
        if self.bind_error is not None:
            raise self.bind_error

    def write(self, data):
        self.calls.append(("write", bytes(data)))
        if self.write_counts:
            count = self.write_counts.pop(0)
            if isinstance(count, OSError):
                raise count
            return count
        return len(data)

    def read(self, length):
        self.calls.append(("read", length))
        item = self.reads.pop(0)
        if isinstance(item, OSError):
            raise item
        return item

    def close(self):
        self.calls.append(("close",))
        self.closed = True

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


def ready_bus(high, low, busy=0, **kwargs):
    """Bus that reports busy `busy` times, then idle, then returns the sample bytes."""
    reads = [bytes([0x01, 0x85])] * busy + [bytes([0x81, 0x85]), bytes([high, low])]
    return FakeBus(reads=reads, **kwargs)
