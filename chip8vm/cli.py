"""Command line entry point: ``chip8vm ROM_FILE [options]``."""

import argparse
import sys
from typing import List, Optional

from chip8vm.config import Chip8Config, load_config
from chip8vm.devices import FrameRecorder, NullAudio, NullDisplay
from chip8vm.errors import Chip8Error
from chip8vm.logging import EmulatorLogger, build_tqdm_progress_bar
from chip8vm.rendering import create_video, save_screenshot
from chip8vm.scheduler import VirtualClock
from chip8vm.vm import Chip8VM

EPILOG = (
    "[1] Originally, 8XY6 and 8XYE shifted Vy and stored the result into "
    "Vx. New interpretations of these instructions ignore Vy and instead "
    "perform the operation on Vx, directly."
)


def _uint(value: str) -> int:
    """Integer argument in decimal or 0x-prefixed hex."""
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8vm",
        description="chip8vm -- A CHIP-8 emulator",
        epilog=EPILOG,
    )
    parser.add_argument("rom_path", metavar="ROM_FILE", nargs="?", help="ROM image to run")
    parser.add_argument("-r", "--rom-offset", type=_uint, help="ROM offset in memory (default:0x200)")
    parser.add_argument("-f", "--font-offset", type=_uint, help="Sprites offset in memory (default:0x50)")
    parser.add_argument("-s", "--scale-factor", dest="scale", type=_uint, help="Window scale factor (default:10)")
    parser.add_argument("-c", "--cpu-freq", dest="frequency", type=_uint, help="CPU frequency in Hz (default:200)")
    parser.add_argument("-i", "--ref-int", dest="refresh_interval", type=_uint,
                        help="Screen refresh interval in cycles (default:20)")
    parser.add_argument("-n", "--new-shift", action="store_true", help="Use new SHL, SHR [1] (default:no)")
    parser.add_argument("-l", "--lazy-render", action="store_true", default=None,
                        help="Refresh screen on DXYN, 00E0 (default:no)")
    parser.add_argument("-a", "--audio-device", help="Audio output device name (default: system default)")
    parser.add_argument("-t", "--tone-freq", dest="tone_frequency", type=float, help="Buzzer tone frequency (default:440)")
    parser.add_argument("--list-audio-devices", action="store_true", help="List audio output devices and exit")
    parser.add_argument("--color-scheme", help="Display palette (default:mvemu)")
    parser.add_argument("--seed", type=_uint, help="Random number generator seed")
    parser.add_argument("--max-cycles", type=_uint, help="Stop after this many instructions")
    parser.add_argument("--headless", action="store_true",
                        help="Run without window or sound, on a virtual clock (as fast as possible)")
    parser.add_argument("--screenshot", metavar="PATH", help="Save the last presented frame as an image")
    parser.add_argument("--record", metavar="PATH", help="Save presented frames as an MP4 video")
    parser.add_argument("--config", metavar="YAML", help="Configuration file")
    parser.add_argument("--set", metavar="KEY=VALUE", action="append", default=[],
                        help="Override a configuration value (repeatable)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL (default:INFO)")
    return parser


def config_from_args(args: argparse.Namespace) -> Chip8Config:
    return load_config(
        args.config,
        args.set,
        rom_path=args.rom_path,
        rom_offset=args.rom_offset,
        font_offset=args.font_offset,
        scale=args.scale,
        frequency=args.frequency,
        refresh_interval=args.refresh_interval,
        legacy_shift=False if args.new_shift else None,
        lazy_render=args.lazy_render,
        audio_device=args.audio_device,
        tone_frequency=args.tone_frequency,
        color_scheme=args.color_scheme,
        seed=args.seed,
        max_cycles=args.max_cycles,
        log_level=args.log_level,
    )


def run(config: Chip8Config, headless: bool, logger: EmulatorLogger,
        screenshot: Optional[str] = None, record: Optional[str] = None) -> int:
    """Run one ROM to completion; returns the process exit status."""
    closers = []
    recorder = None
    progress = None
    close_progress = None

    try:
        if headless:
            screen, audio, keys, events, clock = NullDisplay(), NullAudio(), None, None, VirtualClock()
            if config.max_cycles is not None:
                update, close_progress = build_tqdm_progress_bar(config.max_cycles, leave=False)
                done = [0]

                def progress(cycles: int):
                    if cycles > done[0]:
                        update(cycles - done[0])
                        done[0] = cycles
        else:
            from chip8vm.frontend import PygameDisplay, PygameEvents, PygameKeys, ToneAudio

            audio = ToneAudio(config.tone_frequency, config.audio_device, logger=logger)
            closers.append(audio.close)
            screen = PygameDisplay(config.scale, config.color_scheme)
            closers.append(screen.close)
            keys, events, clock = PygameKeys(), PygameEvents(), None

        if screenshot or record:
            recorder = screen = FrameRecorder(
                max_frames=None if record else 1, sink=screen
            )

        with Chip8VM(config.rom_path, config, screen=screen, audio=audio, keys=keys,
                     events=events, clock=clock, logger=logger) as vm:
            logger.log_startup(config.to_dict())
            try:
                vm.run(progress)
            except KeyboardInterrupt:
                logger.info("Interrupted")
            finally:
                if close_progress is not None:
                    close_progress()
                logger.log_shutdown(vm.stats())
                if recorder is not None:
                    # include the state the machine stopped in
                    vm.present()

        if recorder is not None and recorder.frames:
            if screenshot:
                save_screenshot(recorder.last_frame, screenshot, config.scale, config.color_scheme)
                logger.info(f"Screenshot saved: {screenshot}")
            if record:
                count = create_video(recorder.stacked(), record, color_scheme=config.color_scheme)
                logger.info(f"Video saved: {record} ({count} frames)")
    finally:
        for close in reversed(closers):
            close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = EmulatorLogger()

    if args.list_audio_devices:
        from chip8vm.frontend import list_audio_devices

        for index, name in enumerate(list_audio_devices()):
            print(f"{index:3d}: {name}")
        return 0

    try:
        config = config_from_args(args)
        if config.rom_path is None:
            parser.error("No ROM provided")
        logger = EmulatorLogger(log_level=config.log_level)
        return run(config, args.headless, logger, args.screenshot, args.record)
    except Chip8Error as error:
        logger.critical(str(error))
        return 1


if __name__ == "__main__":
    sys.exit(main())
