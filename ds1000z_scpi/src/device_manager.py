"""
Transports: the byte-level link the session core sends SCPI text over.

The core only needs two calls, send(command) -> bool and
query(command) -> str | None. VisaTransport provides them on top of PyVISA;
anything else (a LAN socket, a simulator) can subclass Transport.
"""

import logging

import pyvisa

DEFAULT_TIMEOUT_MS = 5000

logger = logging.getLogger(__name__)


class Transport:
    """
    Base class for SCPI transports.

    send() returns False instead of raising when the instrument refuses a
    command or the link times out; query() returns None in the same cases.
    """

    def send(self, command):
        raise NotImplementedError

    def query(self, command):
        raise NotImplementedError

    def close(self):
        """Release the link. Optional for transports without resources."""


class VisaTransport(Transport):
    """
    SCPI transport over PyVISA (USB-TMC, VXI-11 or raw socket resources).

    Args:
        resource_name: VISA resource, e.g. 'USB0::0x1AB1::0x0517::DS1ZE213800586::INSTR'
        timeout_ms: I/O timeout applied to the opened resource
        resource_manager: Optional pyvisa.ResourceManager to reuse
    """

    def __init__(self, resource_name, timeout_ms=DEFAULT_TIMEOUT_MS, resource_manager=None):
        self.rm = resource_manager
        self.resource_name = resource_name
        self.timeout_ms = timeout_ms
        self.instrument = None

    def __repr__(self):
        return f"VisaTransport({self.resource_name!r})"

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.disconnect()

    @property
    def is_connected(self):
        return self.instrument is not None

    def connect(self):
        """Open the VISA resource."""
        if self.rm is None:
            self.rm = pyvisa.ResourceManager()
        try:
            self.instrument = self.rm.open_resource(self.resource_name)
            self.instrument.timeout = self.timeout_ms
            self.instrument.write_termination = "\n"
            self.instrument.read_termination = "\n"
            logger.info("Connected to %s", self.resource_name)
        except pyvisa.VisaIOError as e:
            logger.error("Failed to connect to %s: %s", self.resource_name, e)
            raise

    def disconnect(self):
        """Close the VISA resource."""
        if self.instrument:
            self.instrument.close()
            self.instrument = None
            logger.info("Disconnected from %s", self.resource_name)

    close = disconnect

    def send(self, command):
        """Write a command. Returns False when not connected or on VISA I/O errors."""
        if not self.instrument:
            logger.warning("Cannot send %r - not connected", command)
            return False
        try:
            self.instrument.write(command)
        except pyvisa.VisaIOError as e:
            logger.warning("Write of %r failed: %s", command, e)
            return False
        logger.debug("Sent command: %s", command)
        return True

    def query(self, command):
        """Write a query and read one response line. Returns None on failure."""
        if not self.instrument:
            logger.warning("Cannot query %r - not connected", command)
            return None
        try:
            response = self.instrument.query(command)
        except pyvisa.VisaIOError as e:
            logger.warning("Query %r failed: %s", command, e)
            return None
        return response.strip()
