import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Sequence

from sensa_companion.buffer.frame_extractor import END_MARKER, START_MARKER
from sensa_companion.errors import FrameError

FIELD_LABELS = (
    "MQ3",
    "MQ5",
    "MQ131",
    "MQ135",
    "MP503",
    "Temperature",
    "Humidity",
)
CSV_HEADER = ("Time",) + FIELD_LABELS
TIME_FORMAT = "%H:%M:%S"

# the firmware prefixes every report with "->"
_REPORT_ARROW = ">"
_TRAILING_SEPARATOR = re.compile(r",\s*$")


@dataclass(frozen=True)
class SensorRecord:
    captured_at: datetime
    values: Dict[str, str]

    def row(self, time_format=TIME_FORMAT) -> List[str]:
        """
        Timestamp followed by the field values in label order. Trailing
        fields the frame did not report are left out.
        """
        values = list(self.values.values())
        while values and values[-1] == "":
            values.pop()
        return [self.captured_at.strftime(time_format)] + values


def _label_pattern(labels):
    # longest first so that e.g. "MQ135" is never read as "MQ1" + "35"
    alternatives = "|".join(re.escape(label) for label in sorted(labels, key=len, reverse=True))
    return re.compile(rf"(?<![A-Za-z0-9])({alternatives})\s*:\s*")


class FieldDecoder:
    """
    Turns one raw frame such as ``-> MQ3 : 12, MQ5 : 3_`` into a
    :class:`SensorRecord`.

    Decoding is lossy-tolerant and never fails on content: values are kept
    as text, corrupted bytes end up in the values as-is.
    """

    def __init__(
        self,
        labels: Sequence[str] = FIELD_LABELS,
        start_marker: bytes = START_MARKER,
        end_marker: bytes = END_MARKER,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.labels = tuple(labels)
        self.start_marker = start_marker
        self.end_marker = end_marker
        self.clock = clock
        self._pattern = _label_pattern(self.labels)

    def decode(self, frame: bytes) -> SensorRecord:
        if (
            len(frame) < 2
            or not frame.startswith(self.start_marker)
            or not frame.endswith(self.end_marker)
        ):
            raise FrameError(f"Not a bounded frame: {frame!r}")

        captured_at = self.clock()
        # latin-1 maps every byte to a character, so this cannot fail
        body = frame[1:-1].decode("latin-1")
        if body.startswith(_REPORT_ARROW):
            body = body[1:]

        values = dict.fromkeys(self.labels, "")
        matches = list(self._pattern.finditer(body))
        if matches:
            for match, following in zip(matches, matches[1:] + [None]):
                stop = following.start() if following else len(body)
                value = _TRAILING_SEPARATOR.sub("", body[match.end() : stop])
                values[match.group(1)] = value
            self._keep_orphan_text(values, body[: matches[0].start()], matches[0].group(1))
        elif body:
            self._assign_positionally(values, body)

        return SensorRecord(captured_at=captured_at, values=values)

    def _keep_orphan_text(self, values, orphan, first_label):
        """
        Text ahead of the first recognized label (typically a reading whose
        label got corrupted) goes into the slot before that label, or in
        front of its value when there is no earlier slot.
        """
        orphan = _TRAILING_SEPARATOR.sub("", orphan.lstrip())
        if not orphan:
            return
        index = self.labels.index(first_label)
        if index:
            values[self.labels[index - 1]] = orphan
        else:
            values[first_label] = orphan + values[first_label]

    def _assign_positionally(self, values, body):
        pieces = body.split(",")
        head = pieces[: len(self.labels) - 1]
        tail = pieces[len(self.labels) - 1 :]
        for label, piece in zip(self.labels, head):
            values[label] = piece
        if tail:
            values[self.labels[len(head)]] = ",".join(tail)
