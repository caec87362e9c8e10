import errno
import logging
import random
import time

import serial
from serial.tools import list_ports

from sensa_companion.errors import (
    DeviceDisconnectedError,
    DeviceError,
    DeviceNotFoundError,
    DeviceOpenError,
    DeviceWriteError,
)

logger = logging.getLogger(__name__)

SENSA_MANUFACTURER = "Silicon Labs"
SENSA_BAUD = 115200
READ_TIMEOUT = 0.01
READ_SIZE = 1000

_DISCONNECT_ERRNOS = {errno.EIO, errno.ENXIO, errno.EPIPE, errno.ENODEV}


def _is_disconnect(exc):
    if isinstance(exc, OSError) and exc.errno in _DISCONNECT_ERRNOS:
        return True
    # pyserial reports a vanished USB device as a SerialException carrying
    # this text rather than an errno
    return "disconnected" in str(exc).lower()


class SerialDevice:
    """
    Duplex byte channel to the SENSA board.

    ``read`` never blocks longer than ``timeout``. An empty result is a
    timeout, not an error.
    """

    def __init__(
        self,
        port,
        baudrate=SENSA_BAUD,
        timeout=READ_TIMEOUT,
        read_size=READ_SIZE,
    ):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.read_size = read_size
        self._serial_init(port)

    def _serial_init(self, port):
        try:
            self.ser = serial.Serial(port, self.baudrate, timeout=self.timeout)
        except (serial.SerialException, OSError) as exc:
            raise DeviceOpenError(f'Failed to open "{port}". Error: {exc}') from exc
        logger.info("Opened %s at %d baud", port, self.baudrate)

    def read(self) -> bytes:
        try:
            return self.ser.read(self.read_size)
        except (serial.SerialException, OSError) as exc:
            if _is_disconnect(exc):
                raise DeviceDisconnectedError("Device disconnected") from exc
            raise DeviceError(f"Serial read failed on {self.port}: {exc}") from exc

    def write(self, data: bytes) -> None:
        try:
            self.ser.write(data)
        except (serial.SerialException, OSError) as exc:
            raise DeviceWriteError(f"Write failed: {exc}") from exc

    def close(self):
        self.ser.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class MockSerialDevice(SerialDevice):
    """
    Stand-in for the board when no hardware is attached.

    With ``chunks`` each ``read`` returns the next scripted chunk, then ``b""``
    (or a disconnection when ``disconnect_when_exhausted``). Without it a
    sensor report is synthesized every ``interval`` seconds.
    """

    def __init__(
        self,
        chunks=None,
        interval=1.0,
        disconnect_when_exhausted=False,
        port="mock",
        timeout=READ_TIMEOUT,
    ):
        self.chunks = list(chunks) if chunks is not None else None
        self.interval = interval
        self.disconnect_when_exhausted = disconnect_when_exhausted
        self.written = []
        self.closed = False
        self._next_report = 0.0
        super().__init__(port, timeout=timeout)

    def _serial_init(self, port):
        # Mock implementation does not require serial initialization
        pass

    def read(self) -> bytes:
        if self.chunks is not None:
            if self.chunks:
                return self.chunks.pop(0)
            if self.disconnect_when_exhausted:
                raise DeviceDisconnectedError("Device disconnected")
            return b""

        now = time.monotonic()
        if now < self._next_report:
            time.sleep(self.timeout)
            return b""
        self._next_report = now + self.interval
        return self._synthesize_report()

    def write(self, data: bytes) -> None:
        self.written.append(bytes(data))

    def close(self):
        self.closed = True

    def _synthesize_report(self):
        readings = [
            ("MQ3", random.randint(80, 140)),
            ("MQ5", random.randint(200, 320)),
            ("MQ131", random.randint(10, 40)),
            ("MQ135", random.randint(90, 180)),
            ("MP503", random.randint(0, 15)),
            ("Temperature", round(random.uniform(18.0, 30.0), 1)),
            ("Humidity", round(random.uniform(30.0, 70.0), 1)),
        ]
        body = ", ".join(f"{label} : {value}" for label, value in readings)
        return f"-> {body}_\r\n".encode("ascii")


def _is_sensa_port(port, manufacturer):
    # only USB ports carry a manufacturer string
    return port.vid is not None and port.manufacturer == manufacturer


def find_device_port(
    manufacturer=SENSA_MANUFACTURER,
    interval=2.0,
    attempts=0,
    on_miss=None,
):
    """
    Return the device path of the first USB serial port made by
    ``manufacturer``.

    Polls every ``interval`` seconds. ``attempts == 0`` keeps polling until
    the device is plugged in, otherwise ``DeviceNotFoundError`` is raised
    after that many misses.
    """
    misses = 0
    while True:
        for port in list_ports.comports():
            if _is_sensa_port(port, manufacturer):
                logger.info("Found %s device on %s", manufacturer, port.device)
                return port.device

        misses += 1
        logger.info("No %s device found (attempt %d)", manufacturer, misses)
        if attempts and misses >= attempts:
            raise DeviceNotFoundError("Device not found!")
        if on_miss is not None:
            on_miss()
        time.sleep(interval)
