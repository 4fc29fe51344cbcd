"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import time

from .brightness import open_brightness
from .capture import SoundDeviceCapture, list_input_devices
from .config import Config, load_config
from .logging_utils import setup_logging
from .models import DreamRecorderState, SunriseState
from .recorder import DreamRecorder
from .scheduler import SystemClock, ThreadScheduler
from .session_io import JsonFileKeyValueStore, RecordingsStore, SettingsStore
from .storage import FileStore
from .sunrise import SunriseController
from .sunrise_utils import (
    calc_recording_auto_stop,
    calc_sunrise_start_time,
    from_epoch_ms,
    time_string,
)
from .waveform import format_duration

STORE_FILENAME = "dawndream_store.json"


def _add_common(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config", default="dawndream_config.yml", help="Config.")
    cmd.add_argument("--base-dir", help="Base data directory.")
    cmd.add_argument("--debug", action="store_true", help="Verbose logging, echoed to stderr.")


def _load(args: argparse.Namespace) -> tuple[Config, FileStore, JsonFileKeyValueStore]:
    cfg = load_config(args.config) if os.path.exists(args.config) else Config()
    if args.base_dir:
        cfg.base_dir = args.base_dir
    files = FileStore(cfg.base_dir)
    level = logging.DEBUG if (args.debug or cfg.debug_logging) else logging.INFO
    setup_logging(files.paths["logs"], level=level, console=args.debug)
    kv = JsonFileKeyValueStore(os.path.join(files.paths["root"], STORE_FILENAME))
    return cfg, files, kv


def _print_sunrise(status) -> None:
    if status.state is SunriseState.IDLE:
        print("No alarm set")
    elif status.state is SunriseState.WAITING:
        print(f"Sunrise simulation in {status.minutes_until_start} min")
    elif status.state is SunriseState.ACTIVE:
        print(f"Sunrise simulation active, brightness {round(status.progress * 100)}%")
    else:
        print("Sunrise complete")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dawndream")
    sub = parser.add_subparsers(dest="command")

    devices_cmd = sub.add_parser("devices")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")

    alarm_cmd = sub.add_parser("alarm")
    _add_common(alarm_cmd)
    alarm_cmd.add_argument("time", nargs="?", help="Alarm time as HH:MM.")
    alarm_cmd.add_argument("--clear", action="store_true", help="Remove the alarm.")

    recordings_cmd = sub.add_parser("recordings")
    _add_common(recordings_cmd)
    recordings_cmd.add_argument("--delete", metavar="ID", help="Delete a recording.")

    record_cmd = sub.add_parser("record")
    _add_common(record_cmd)
    record_cmd.add_argument("--device", help="Preferred device name substring.")
    record_cmd.add_argument(
        "--no-auto-stop",
        action="store_true",
        help="Ignore the alarm and record until Ctrl-C.",
    )

    sunrise_cmd = sub.add_parser("sunrise")
    _add_common(sunrise_cmd)
    sunrise_cmd.add_argument(
        "--follow", action="store_true", help="Drive the brightness until done."
    )

    args = parser.parse_args(argv)
    if args.command == "devices":
        devices = list_input_devices()
        if args.match:
            devices = [
                d for d in devices if args.match.lower() in d.get("name", "").lower()
            ]
        for device in devices:
            name = device.get("name", "Unknown")
            index = device.get("index", "?")
            channels = device.get("max_input_channels", 0)
            print(f"[{index}] {name} (inputs: {channels})")
        return 0

    if args.command == "alarm":
        _cfg, _files, kv = _load(args)
        settings_store = SettingsStore(kv)
        if args.clear:
            settings_store.set_alarm_time(None)
            print("Alarm cleared")
            return 0
        if args.time:
            try:
                settings = settings_store.set_alarm_time(args.time)
            except ValueError as exc:
                print(str(exc))
                return 1
        else:
            settings = settings_store.load()
        if not settings.alarm_time:
            print("No alarm set")
            return 0
        now = SystemClock().now()
        sunrise_at = calc_sunrise_start_time(settings.alarm_time, now)
        stop_at = calc_recording_auto_stop(settings.alarm_time, now)
        print(f"Alarm: {settings.alarm_time}")
        print(f"Sunrise starts: {from_epoch_ms(sunrise_at):%Y-%m-%d %H:%M}")
        print(f"Recording stops: {from_epoch_ms(stop_at):%Y-%m-%d %H:%M}")
        return 0

    if args.command == "recordings":
        _cfg, files, kv = _load(args)
        store = RecordingsStore(kv, files)
        store.load()
        if args.delete:
            if store.delete(args.delete):
                print(f"Deleted {args.delete}")
                return 0
            print(f"No recording {args.delete}")
            return 1
        if not store.recordings:
            print("No recordings yet.")
            return 0
        for seg in store.recordings:
            stamp = time_string(seg.timestamp)
            print(f"{seg.id}  {seg.date} {stamp}  {format_duration(seg.duration):>6}  {seg.uri}")
        return 0

    if args.command == "record":
        cfg, files, kv = _load(args)
        store = RecordingsStore(kv, files)
        store.load()
        settings = SettingsStore(kv).load()
        capture = SoundDeviceCapture(
            files.capture_dir,
            device_name=args.device or cfg.device_name,
            sample_rate_hz=cfg.audio.sample_rate_hz,
            channels=cfg.audio.channels,
            block_ms=cfg.audio.block_ms,
        )
        clock = SystemClock()
        recorder = DreamRecorder(
            capture, files, clock, ThreadScheduler(), on_segment=store.add
        )
        auto_stop = None
        if settings.alarm_time and not args.no_auto_stop:
            auto_stop = calc_recording_auto_stop(settings.alarm_time, clock.now())
            print(f"Auto-stop at {time_string(auto_stop)}")
        if not recorder.start(auto_stop):
            print("Microphone permission denied.")
            return 1
        print("Recording dreams... Ctrl-C to stop.")
        try:
            while recorder.state is not DreamRecorderState.STOPPED:
                status = recorder.status
                if status.state is DreamRecorderState.WAITING:
                    line = f"Waiting {status.wait_seconds_left // 60} min"
                else:
                    line = f"{status.state.value}, segments: {status.segment_count}"
                print(f"\r{line:<40}", end="", flush=True)
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            segments = recorder.stop()
            recorder.close()
        print(f"\nSaved {len(segments)} segment(s)")
        return 0

    if args.command == "sunrise":
        cfg, _files, kv = _load(args)
        settings = SettingsStore(kv).load()
        controller = SunriseController(
            SystemClock(),
            ThreadScheduler(),
            open_brightness(cfg.brightness.backlight),
            alarm_time=settings.alarm_time,
        )
        _print_sunrise(controller.status)
        if not args.follow or controller.status.state is SunriseState.IDLE:
            controller.close()
            return 0
        try:
            while controller.status.state is not SunriseState.DONE:
                time.sleep(10)
                _print_sunrise(controller.status)
        except KeyboardInterrupt:
            pass
        finally:
            controller.close()
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
