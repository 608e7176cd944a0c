"""
Mock oscilloscope transport for testing the session core and the REPL
without physical hardware.

Usage:
    ds1000z-repl --mock
"""

from ds1000z_scpi.src.device_manager import Transport

IDN = "RIGOL TECHNOLOGIES,DS1104Z,MOCK000001,00.04.05.SP2"

# Readings returned by ':MEASure:ITEM? <item>,<source>'; anything else is 9.9E37
MEASUREMENTS = {
    "VMAX": "1.000000e+00",
    "VMIN": "-1.000000e+00",
    "VPP": "2.000000e+00",
    "VAVG": "0.000000e+00",
    "VRMS": "7.071068e-01",
    "PERIOD": "1.000000e-03",
    "FREQUENCY": "1.000000e+03",
}
NO_READING = "9.9E37"


def _default_state(channel_count):
    state = {
        ":MATH:DISPLAY": "0",
        ":MATH:OPERATOR": "ADD",
        ":MATH:SOURCE1": "CHAN1",
        ":MATH:SOURCE2": "CHAN2",
        ":MATH:SCALE": "1.000000e+00",
        ":MATH:OFFSET": "0.000000e+00",
        ":MATH:INVERT": "0",
        ":MATH:FFT:SOURCE": "CHAN1",
        ":MATH:FFT:WINDOW": "RECT",
        ":MATH:FFT:SPLIT": "FULL",
        ":MATH:FFT:UNIT": "DB",
        ":MATH:FILTER:TYPE": "LPAS",
        ":MATH:FILTER:W1": "5.000000e+02",
        ":MATH:FILTER:W2": "1.000000e+03",
        ":MATH:OPTION:START": "0",
        ":MATH:OPTION:END": "1199",
        ":MATH:OPTION:FX:OPERATOR": "INTG",
        ":TIMEBASE:MAIN:SCALE": "1.000000e-03",
        ":TIMEBASE:MAIN:OFFSET": "0.000000e+00",
        ":TIMEBASE:MODE": "MAIN",
        ":TIMEBASE:DELAY:ENABLE": "0",
        ":TIMEBASE:DELAY:SCALE": "5.000000e-07",
        ":TIMEBASE:DELAY:OFFSET": "0.000000e+00",
        ":TRIGGER:MODE": "EDGE",
        ":TRIGGER:SWEEP": "AUTO",
        ":TRIGGER:COUPLING": "DC",
        ":TRIGGER:HOLDOFF": "1.600000e-08",
        ":TRIGGER:NREJECT": "0",
        ":TRIGGER:EDGE:SOURCE": "CHAN1",
        ":TRIGGER:EDGE:SLOPE": "POS",
        ":TRIGGER:EDGE:LEVEL": "0.000000e+00",
        ":TRIGGER:STATUS": "AUTO",
        ":MEASURE:SOURCE": "CHAN1",
        ":MEASURE:STATISTIC:DISPLAY": "0",
        ":MEASURE:STATISTIC:MODE": "EXTR",
    }
    for n in range(1, channel_count + 1):
        prefix = f":CHANNEL{n}"
        state.update(
            {
                f"{prefix}:DISPLAY": "1" if n == 1 else "0",
                f"{prefix}:PROBE": "1.000000e+01",
                f"{prefix}:SCALE": "1.000000e+00",
                f"{prefix}:OFFSET": "0.000000e+00",
                f"{prefix}:COUPLING": "DC",
                f"{prefix}:BWLIMIT": "OFF",
                f"{prefix}:INVERT": "0",
                f"{prefix}:UNITS": "VOLT",
            }
        )
    return state


class MockScope(Transport):
    """
    In-memory DS1000Z: remembers every 'HEADER value' it is sent and answers
    'HEADER?' from that table.

    Args:
        channel_count: Number of analog channels to simulate
        fail_sends: 0-based indexes of send() calls that return False
        fail_commands: Headers (any case) whose send() returns False
        fail_queries: Query commands that return None
        responses: Query command -> raw reply, overriding the state table
    """

    def __init__(self, channel_count=4, fail_sends=(), fail_commands=(), fail_queries=(), responses=None):
        self.channel_count = channel_count
        self.state = _default_state(channel_count)
        self.sent = []
        self.queries = []
        self.fail_sends = set(fail_sends)
        self.fail_commands = {c.upper() for c in fail_commands}
        self.fail_queries = set(fail_queries)
        self.responses = dict(responses or {})
        self.closed = False

    def __repr__(self):
        return f"MockScope(channels={self.channel_count})"

    @staticmethod
    def _header(command):
        return command.strip().split(" ", 1)[0].rstrip("?").upper()

    def send(self, command):
        index = len(self.sent)
        self.sent.append(command)
        header = self._header(command)
        if index in self.fail_sends or header in self.fail_commands:
            return False
        if header == ":MATH:RESET":
            for key in [k for k in self.state if k.startswith(":MATH:")]:
                del self.state[key]
            self.state.update({k: v for k, v in _default_state(0).items() if k.startswith(":MATH:")})
            return True
        parts = command.strip().split(" ", 1)
        if len(parts) == 2:
            self.state[header] = parts[1].strip()
        return True

    def query(self, command):
        self.queries.append(command)
        if command in self.fail_queries:
            return None
        if command in self.responses:
            return self.responses[command]
        if command.strip().upper() == "*IDN?":
            return IDN
        header = self._header(command)
        if header == ":MEASURE:ITEM":
            item = command.strip().split(" ", 1)[-1].split(",")[0].strip().upper()
            return MEASUREMENTS.get(item, NO_READING)
        return self.state.get(header)

    def close(self):
        self.closed = True


def get_mock_transport(channel_count=4, verbose=True):
    if verbose:
        from ds1000z_scpi.src.terminal import ColorPrinter
        ColorPrinter.warning("Mock mode - no real instrument connected")
        ColorPrinter.info(f"Injecting: scope (MockScope, {channel_count} channels)")
    return MockScope(channel_count)
