import enum
import logging
import os
from datetime import datetime

from sensa_companion.decoder import FIELD_LABELS, TIME_FORMAT, SensorRecord

logger = logging.getLogger(__name__)

FILENAME_FORMAT = "Session %d-%m-%Y %H-%M-%S.csv"


class SessionStatus(enum.Enum):
    STARTED = "started"
    ALREADY_ACTIVE = "already_active"
    STOPPED = "stopped"
    NOT_ACTIVE = "not_active"


class RecordingSession:
    """
    User-toggled persistence of decoded sensor records to a CSV file.

    Every record is flushed as soon as it is written so that a crash or a
    pulled cable loses at most the record in flight. Sink failures are not
    caught here: a session that cannot persist is treated as fatal.
    """

    def __init__(
        self,
        output_dir=".",
        labels=FIELD_LABELS,
        filename_format=FILENAME_FORMAT,
        time_format=TIME_FORMAT,
        clock=datetime.now,
    ):
        self.output_dir = output_dir
        self.header = ["Time", *labels]
        self.filename_format = filename_format
        self.time_format = time_format
        self.clock = clock

        self._active = False
        self._sink = None
        self._path = None

    @property
    def active(self):
        return self._active

    @property
    def path(self):
        return self._path

    def start(self) -> SessionStatus:
        if self._active:
            return SessionStatus.ALREADY_ACTIVE

        os.makedirs(self.output_dir, exist_ok=True)
        path = self._unused_path(self.clock().strftime(self.filename_format))
        # the previous sink is only kept open for reuse until a new session starts
        self._close_sink()

        self._sink = open(path, mode="x", newline="", encoding="utf-8")
        self._path = path
        self._write_line(self.header)

        self._active = True
        logger.info("Recording session started: %s", path)
        return SessionStatus.STARTED

    def stop(self) -> SessionStatus:
        if not self._active:
            return SessionStatus.NOT_ACTIVE
        self._active = False
        logger.info("Recording session stopped: %s", self._path)
        return SessionStatus.STOPPED

    def record(self, record: SensorRecord) -> bool:
        if not self._active:
            return False
        self._write_line(record.row(self.time_format))
        return True

    def close(self):
        self._active = False
        self._close_sink()

    def _close_sink(self):
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def _write_line(self, fields):
        # values are opaque device text, written without any quoting
        self._sink.write(",".join(fields) + "\n")
        self._sink.flush()

    def _unused_path(self, filename):
        # a restart within the same second must not truncate the last session
        path = os.path.join(self.output_dir, filename)
        stem, ext = os.path.splitext(path)
        counter = 2
        while os.path.exists(path):
            path = f"{stem} ({counter}){ext}"
            counter += 1
        return path
