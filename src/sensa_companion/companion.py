import logging

logger = logging.getLogger(__name__)


class Companion:
    """
    Single-threaded control loop.

    Each step does one bounded serial read, routes complete frames to the
    recording session, then handles at most one pending key press. Fatal
    device errors propagate out of ``run``.
    """

    def __init__(self, device, extractor, decoder, session, interpreter, view, keys):
        self.device = device
        self.extractor = extractor
        self.decoder = decoder
        self.session = session
        self.interpreter = interpreter
        self.view = view
        self.keys = keys

    def step(self):
        frames = 0
        data = self.device.read()
        if data:
            self.view.echo(data)
            for frame in self.extractor.ingest(data):
                record = self.decoder.decode(frame)
                logger.debug("Frame %r -> %s", frame, record.values)
                self.session.record(record)
                frames += 1

        event = self.keys.poll()
        if event is not None:
            self.interpreter.handle(event)

        self.view.draw_command(self.interpreter.text)
        return frames

    def run(self):
        while True:
            self.step()
