import argparse
import logging
import sys

from blessed import Terminal

from sensa_companion.buffer.frame_extractor import FrameExtractor
from sensa_companion.buffer.session_recorder import RecordingSession
from sensa_companion.commands import CommandInterpreter
from sensa_companion.companion import Companion
from sensa_companion.config.utils import load_config, markers
from sensa_companion.decoder import FieldDecoder
from sensa_companion.device import MockSerialDevice, SerialDevice, find_device_port
from sensa_companion.display import KeyboardInput, TerminalView
from sensa_companion.errors import CompanionError

logger = logging.getLogger(__name__)

TITLE = " SENSA Device Companion Program "
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Live view and CSV recording for the SENSA gas sensor board"
    )
    p.add_argument("--config", default=None, help="YAML file overriding the packaged defaults")
    p.add_argument("--port", default=None, help="Serial port (default: auto-detect)")
    p.add_argument("--output-dir", default=None, help="Directory for session CSV files")
    p.add_argument("--log-level", default=None, help="Log level (default: from config)")
    p.add_argument(
        "--mock",
        action="store_true",
        help="Run against a simulated device instead of the serial port",
    )
    return p.parse_args(argv)


def setup_logging(path, level="INFO"):
    # the terminal belongs to the live view, so logs go to a file
    logging.basicConfig(
        filename=path,
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )


def open_device(args, config, view):
    cfg = config["device"]
    if args.mock:
        view.notice("Using simulated SENSA device")
        return MockSerialDevice(timeout=cfg["timeout"])

    port_name = args.port
    if port_name is None:
        port_name = find_device_port(
            manufacturer=cfg["manufacturer"],
            interval=cfg["discovery_interval"],
            attempts=cfg["discovery_attempts"],
            on_miss=lambda: view.notice("Device not found"),
        )
        view.notice(f"SENSA device found on port {port_name}")

    device = SerialDevice(
        port_name,
        baudrate=cfg["baudrate"],
        timeout=cfg["timeout"],
        read_size=cfg["read_size"],
    )
    view.notice("Connected to SENSA device")
    return device


def build_companion(device, config, output_dir, view, keys):
    start, end = markers(config)
    labels = config["protocol"]["fields"]
    recording = config["recording"]

    session = RecordingSession(
        output_dir=output_dir,
        labels=labels,
        filename_format=recording["filename_format"],
        time_format=recording["time_format"],
    )
    return Companion(
        device=device,
        extractor=FrameExtractor(start, end),
        decoder=FieldDecoder(labels, start, end),
        session=session,
        interpreter=CommandInterpreter(session, device, notify=view.notice),
        view=view,
        keys=keys,
    )


def main(argv=None):
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except CompanionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(config["logging"]["file"], args.log_level or config["logging"]["level"])
    output_dir = args.output_dir or config["recording"]["output_dir"]

    term = Terminal()
    view = TerminalView(term)
    keys = KeyboardInput(term)
    device = None
    companion = None
    try:
        with view.session():
            view.banner(TITLE)
            view.draw_command("")
            device = open_device(args, config, view)
            companion = build_companion(device, config, output_dir, view, keys)

            view.notice(
                f"Receiving data on port {device.port} at {device.baudrate} baud:"
            )
            view.notice(
                'Please enter command "start" to start recording the sensor data to a file'
            )
            companion.run()
    except KeyboardInterrupt:
        print("\nInterrupted; ending.")
    except (CompanionError, OSError) as exc:
        logger.error("Fatal error: %s", exc, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if companion is not None:
            companion.session.close()
        if device is not None:
            device.close()

    print("Goodbye.")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
