START_MARKER = b"-"
END_MARKER = b"_"


class FrameExtractor:
    """
    Cuts marker-delimited frames out of the raw serial stream.

    The device interleaves sensor reports with free-form output (boot logs,
    replies to passthrough commands), and a read can end anywhere, so a
    trailing partial frame is carried over to the next ``ingest`` call.
    """

    def __init__(self, start_marker=START_MARKER, end_marker=END_MARKER):
        if len(start_marker) != 1 or len(end_marker) != 1:
            raise ValueError("Frame markers must be single bytes")
        if start_marker == end_marker:
            raise ValueError("Start and end markers must differ")
        self.start_marker = bytes(start_marker)
        self.end_marker = bytes(end_marker)
        self._buffer = bytearray()

    def ingest(self, data: bytes) -> list[bytes]:
        """
        Append ``data`` and return every frame that is now complete, in
        stream order. Each frame includes both markers.
        """
        self._buffer.extend(data)
        frames = []
        while True:
            start = self._buffer.find(self.start_marker)
            if start < 0:
                # nothing to anchor on yet, keep everything
                break
            if start:
                del self._buffer[:start]

            end = self._buffer.find(self.end_marker, 1)
            if end < 0:
                break

            restart = self._buffer.find(self.start_marker, 1, end)
            if restart >= 0:
                # a frame never holds two start markers: resync on the later one
                del self._buffer[:restart]
                continue

            frames.append(bytes(self._buffer[: end + 1]))
            del self._buffer[: end + 1]
        return frames

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def __len__(self):
        return len(self._buffer)
