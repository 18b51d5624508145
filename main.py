"""
main.py — EyeTalk application entry point.

Parses CLI args, loads configuration, wires the session controller to
audio output and runs either the web dashboard or a headless scripted
pointer demo.
"""

from __future__ import annotations

import argparse
import logging
import sys
import traceback
from typing import Callable

# ──────────────────────────────────────────────────────────────
# ASCII banner
# ──────────────────────────────────────────────────────────────

_BANNER = r"""
  _____           _____     _ _
 | ____|   _  ___|_   _|_ _| | | __
 |  _|| | | |/ _ \ | |/ _` | | |/ /
 | |__| |_| |  __/ | | (_| | |   <
 |_____\__, |\___| |_|\__,_|_|_|\_\
       |___/
          EyeTalk  v1.0
   Gaze-dwell phrase board
"""


# ──────────────────────────────────────────────────────────────
# Argument parsing
# ──────────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="eyetalk",
        description="EyeTalk — gaze-dwell selection of spoken phrases",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to eyetalk.yaml (default: EYETALK_CONFIG or config/eyetalk.yaml)",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN"],
        default=None,
        help="Minimum log level for stderr output (default: logging.level from config)",
    )
    p.add_argument(
        "--headless",
        action="store_true",
        help="Run a scripted pointer demo without any UI",
    )
    p.add_argument(
        "--web",
        action="store_true",
        help="Start the FastAPI web dashboard",
    )
    p.add_argument(
        "--port",
        type=int,
        default=7860,
        help="Port for the web dashboard",
    )
    return p


# ──────────────────────────────────────────────────────────────
# Wiring helpers
# ──────────────────────────────────────────────────────────────

def _sample_sink(controller) -> Callable[[float, float], object]:
    """The pointer simulator always emits percent, whatever the configured input space."""
    return lambda x, y: controller.push_sample(x, y, coordinate_space="percent")


def _demo_script(controller) -> list[tuple[float, float, float]]:
    """Dwell on every phrase in turn, then lock and unlock the board."""
    # Top-left corner is outside every target; used to break a dwell
    rest = (0.0, 0.0, 0.5)
    steps: list[tuple[float, float, float]] = []
    for target in controller.registry.standard_targets:
        steps.append((target.center_x, target.center_y, 2.0))
        steps.append(rest)
    layout = controller.config.layout
    steps.append((layout.lock_center_x, layout.lock_center_y, 2.0))
    steps.append(rest)
    steps.append((layout.lock_center_x, layout.lock_center_y, 2.0))
    return steps


# ──────────────────────────────────────────────────────────────
# Headless entry point
# ──────────────────────────────────────────────────────────────

def _run_headless(controller) -> int:
    """Drive the session with the pointer simulator. Returns exit code."""
    from eyetalk.core.events import ON_LOCK_STATE_CHANGED, ON_SELECTION_CONFIRMED
    from eyetalk.gaze.simulator import PointerSimulator

    controller.subscribe(
        ON_SELECTION_CONFIRMED,
        lambda d: print(f"[SELECT] {d['target_id']}: {d['label']!r}"),
    )
    controller.subscribe(
        ON_LOCK_STATE_CHANGED,
        lambda d: print(f"[LOCK] {'locked' if d['locked'] else 'unlocked'}"),
    )

    simulator = PointerSimulator(sink=_sample_sink(controller))
    controller.start()
    simulator.start()
    try:
        sent = simulator.play_script(
            _demo_script(controller),
            rate_hz=controller.config.dwell.sample_rate_hz,
        )
        print(f"[INFO] Demo finished — {sent} samples sent")
    except KeyboardInterrupt:
        pass
    finally:
        simulator.stop()
        controller.stop()
    return 0


# ──────────────────────────────────────────────────────────────
# Web UI entry point
# ──────────────────────────────────────────────────────────────

def _run_web(controller, port: int = 7860) -> int:
    """
    Start the FastAPI web server in the main thread.

    Open http://localhost:<port>/ in a browser and press Start; sessions
    are started and stopped from the dashboard.
    """
    from eyetalk.ui.web_app import start_web_server

    print(f"[INFO] Web UI → http://localhost:{port}/")
    print("       Press Ctrl-C to stop.")

    try:
        start_web_server(controller, host="0.0.0.0", port=port)
    except KeyboardInterrupt:
        pass
    finally:
        controller.stop()
    return 0


# ──────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    """Application entry point. Returns process exit code."""
    print(_BANNER)

    parser = _build_parser()
    args = parser.parse_args(argv)

    from eyetalk.core.config import load_config
    from eyetalk.core.logger import configure_logger

    try:
        config = load_config(args.config)
    except (ValueError, FileNotFoundError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    # Stdlib logging level: CLI flag wins over config
    level_name = args.log_level or config.logging.level.upper()
    level_map = {"DEBUG": logging.DEBUG, "INFO": logging.INFO,
                 "WARN": logging.WARNING, "WARNING": logging.WARNING,
                 "ERROR": logging.ERROR}
    logging.basicConfig(level=level_map.get(level_name, logging.INFO))

    log = configure_logger(config.logging.log_dir, enabled=config.logging.log_sessions)
    log.info("main", "args_parsed", {
        "config": args.config,
        "headless": args.headless,
        "web": args.web,
        "log_level": level_name,
    })

    from eyetalk.core.session import SessionController
    from eyetalk.output.audio import AudioPlayer

    audio = AudioPlayer(config.audio, config.tts)
    controller = SessionController(config=config, audio=audio)
    log.info("main", "controller_ready", {"phrases": len(controller.phrase_book)})

    exit_code = 0
    try:
        if args.web:
            print(f"[INFO] Starting web UI — port={args.port}")
            exit_code = _run_web(controller, port=args.port)
        elif args.headless:
            print("[INFO] Running headless pointer demo (--headless)")
            exit_code = _run_headless(controller)
        else:
            parser.print_help()
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted — shutting down…")
        controller.stop()
    except Exception:                              # noqa: BLE001
        tb = traceback.format_exc()
        print(tb, file=sys.stderr)
        log.error("main", "unhandled_exception", {"traceback": tb})
        exit_code = 1
    finally:
        audio.shutdown()
        log.flush()

    print(f"[INFO] EyeTalk exited with code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
