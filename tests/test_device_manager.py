import pyvisa
import pytest

from ds1000z_scpi.src.device_manager import VisaTransport


class FakeResource:
    def __init__(self, reply="1.000000e+00\n", fail=False):
        self.reply = reply
        self.fail = fail
        self.written = []
        self.closed = False

    def write(self, command):
        if self.fail:
            raise pyvisa.VisaIOError(pyvisa.constants.StatusCode.error_timeout)
        self.written.append(command)

    def query(self, command):
        if self.fail:
            raise pyvisa.VisaIOError(pyvisa.constants.StatusCode.error_timeout)
        return self.reply

    def close(self):
        self.closed = True


class FakeResourceManager:
    def __init__(self, resource):
        self.resource = resource
        self.opened = []

    def open_resource(self, name):
        self.opened.append(name)
        return self.resource


def test_connect_configures_resource():
    resource = FakeResource()
    with VisaTransport("USB0::FAKE::INSTR", timeout_ms=2000, resource_manager=FakeResourceManager(resource)) as scope:
        assert scope.is_connected
        assert resource.timeout == 2000
        assert resource.read_termination == "\n"
        assert scope.send(":MATH:DISPlay ON")
        assert scope.query(":CHANnel1:SCALe?") == "1.000000e+00"
    assert resource.closed
    assert not scope.is_connected


def test_io_errors_become_false_and_none():
    transport = VisaTransport("USB0::FAKE::INSTR", resource_manager=FakeResourceManager(FakeResource(fail=True)))
    transport.connect()
    assert transport.send(":MATH:DISPlay ON") is False
    assert transport.query(":MATH:DISPlay?") is None


def test_not_connected():
    transport = VisaTransport("USB0::FAKE::INSTR")
    assert transport.send(":MATH:DISPlay ON") is False
    assert transport.query(":MATH:DISPlay?") is None


def test_connect_failure_propagates():
    class Refusing:
        def open_resource(self, name):
            raise pyvisa.VisaIOError(pyvisa.constants.StatusCode.error_resource_not_found)

    with pytest.raises(pyvisa.VisaIOError):
        VisaTransport("USB0::FAKE::INSTR", resource_manager=Refusing()).connect()
