"""
Detection engine entry point.

Starts a detection session against the remote detection service, either on a
live camera (with the consumer API served alongside) or one-shot on an image
file.

Usage:
    python src/main.py --config config/config.yaml --poll
    python src/main.py --image samples/photo.jpg

Arguments:
    --config: Path to configuration file
    --image: Run a single detection on an image file and print the result
    --poll: Start continuous detection as soon as the camera is up
    --no-web: Do not serve the consumer API
"""

import os
import sys
import argparse
import asyncio
import json
import logging
from typing import Dict, Any, Tuple, Optional

import yaml
import uvicorn

from models.config import Config
from models.detection import DetectionResult
from models.errors import AuthError, CaptureError, DecodeError, DetectionError, EngineError
from ops.logging import setup_logging
from runtime.session import DetectionSession
from web.app import create_app
from web.services.stats_service import StatsService


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['service', 'camera', 'polling', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate detection service settings
    service = config.get('service') or {}
    base_url = service.get('base_url')
    if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
        return False, "service.base_url must be an http(s) URL"
    target_class = service.get('target_class', 'patriota')
    if not isinstance(target_class, str) or not target_class:
        return False, "service.target_class must be a non-empty string"
    timeout = service.get('request_timeout_s')
    if timeout is not None and (not _is_number(timeout) or timeout <= 0):
        return False, "service.request_timeout_s must be a positive number or null"

    # Validate camera settings
    camera = config.get('camera') or {}
    device_id = camera.get('device_id', 0)
    if not isinstance(device_id, (int, str)) or isinstance(device_id, bool):
        return False, "camera.device_id must be an integer (index) or string (URL)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"

    resolution = camera.get('resolution', [1280, 720])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in resolution):
        return False, "camera.resolution values must be positive integers"

    quality = camera.get('jpeg_quality', 80)
    if not isinstance(quality, int) or not (1 <= quality <= 100):
        return False, "camera.jpeg_quality must be an integer between 1 and 100"

    facing_devices = camera.get('facing_devices', {}) or {}
    if not isinstance(facing_devices, dict):
        return False, "camera.facing_devices must be a mapping of facing mode to device"

    # Validate polling settings
    polling = config.get('polling') or {}
    interval = polling.get('interval_s', 2.0)
    if not _is_number(interval) or interval <= 0:
        return False, "polling.interval_s must be a positive number"

    # Optional web settings
    web = config.get('web', {}) or {}
    if 'port' in web:
        port = web['port']
        if not isinstance(port, int) or not (0 < port < 65536):
            return False, "web.port must be an integer between 1 and 65535"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def _log_result(result: DetectionResult) -> None:
    if result.detected:
        logging.info(f"Target detected! Confidence: {result.confidence * 100:.1f}%")
    else:
        logging.info("Target not detected")


def _log_error(error: EngineError, origin: str) -> None:
    logging.warning(f"Engine error ({origin}): {error}")


async def run_image(config: Config, image_path: str) -> int:
    """One-shot detection on an image file; prints the result as JSON."""
    with open(image_path, "rb") as f:
        data = f.read()

    async with DetectionSession(config) as session:
        session.add_result_listener(_log_result)
        try:
            await session.auth.acquire()
            result = await session.load_image(data)
        except (AuthError, DecodeError, DetectionError) as e:
            logging.error(f"Detection failed: {e}")
            return 1

        output: Dict[str, Any] = {"result": result.to_dict() if result else None}
        overlay = session.overlay()
        if overlay is not None:
            output["overlay"] = {
                "left": overlay.left,
                "top": overlay.top,
                "width": overlay.width,
                "height": overlay.height,
            }
        print(json.dumps(output, indent=2))
    return 0


async def run_camera(config: Config, poll: bool, serve_web: bool) -> int:
    """Live camera session, optionally serving the consumer API until interrupted."""
    async with DetectionSession(config) as session:
        session.add_result_listener(_log_result)
        session.add_error_listener(_log_error)
        try:
            try:
                await session.start_camera()
            except CaptureError:
                if not serve_web:
                    return 1
                logging.warning("Camera unavailable; waiting for a retry through the API")
            else:
                if poll:
                    session.start_polling()

            if serve_web:
                server = uvicorn.Server(
                    uvicorn.Config(
                        create_app(session),
                        host=config.web.host,
                        port=config.web.port,
                        log_level="info",
                    )
                )
                logging.info(f"Consumer API on http://{config.web.host}:{config.web.port}/api")
                await server.serve()
            else:
                await asyncio.Event().wait()
        finally:
            summary = StatsService(session.history).get_summary()
            logging.info(
                f"Session summary: total={summary['total']}, detected={summary['detected_count']}, "
                f"success_rate={summary['success_rate'] * 100:.1f}%, "
                f"avg_confidence={summary['average_confidence'] * 100:.1f}%"
            )
    return 0


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Detection Engine')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--image', type=str, default=None,
                        help='Run one detection on an image file and exit')
    parser.add_argument('--poll', action='store_true',
                        help='Start continuous detection immediately')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not serve the consumer API')
    args = parser.parse_args()

    raw_config = load_config(args.config)

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    logging.info("Starting Detection Engine")
    try:
        if args.image:
            code = asyncio.run(run_image(config, args.image))
        else:
            poll = args.poll or config.polling.auto_start
            serve_web = config.web.enabled and not args.no_web
            code = asyncio.run(run_camera(config, poll, serve_web))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        code = 0
    except OSError as e:
        logging.error(f"I/O error: {e}")
        code = 1
    finally:
        logging.info("Detection Engine stopped")
    sys.exit(code)


if __name__ == "__main__":
    main()
