from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import NoReturn
from urllib import error, request

from .config import load_service_config


def main(argv: list[str] | None = None) -> NoReturn:
  argv = list(sys.argv[1:] if argv is None else argv)

  if not argv or argv[0] not in {"serve", "status", "init-db"}:
    print("Usage: logdepot {serve|status|init-db}", file=sys.stderr)
    print("  serve         - Run the HTTP service", file=sys.stderr)
    print("  status        - Check whether the service is reachable", file=sys.stderr)
    print("  init-db       - Create the logs table and indexes", file=sys.stderr)
    sys.exit(1)

  if argv[0] == "serve":
    _run_serve(argv[1:])
  elif argv[0] == "status":
    _run_status(argv[1:])
  elif argv[0] == "init-db":
    _run_init_db()
  sys.exit(0)


def _run_serve(args: list[str]) -> None:
  cfg = load_service_config()
  parser = argparse.ArgumentParser(prog="logdepot serve", description="Run the logdepot HTTP service")
  parser.add_argument("--host", default=cfg.host, help=f"Bind address (default: {cfg.host})")
  parser.add_argument("--port", type=int, default=cfg.port, help=f"Port (default: {cfg.port})")
  parsed = parser.parse_args(args)

  logging.basicConfig(
    level=cfg.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )

  import uvicorn

  uvicorn.run("logdepot_service.api:app", host=parsed.host, port=parsed.port)


def _run_status(args: list[str]) -> None:
  cfg = load_service_config()
  parser = argparse.ArgumentParser(prog="logdepot status", description="Check a running logdepot service")
  parser.add_argument("--host", default=cfg.host, help=f"Service host (default: {cfg.host})")
  parser.add_argument("--port", type=int, default=cfg.port, help=f"Service port (default: {cfg.port})")
  parsed = parser.parse_args(args)

  # a wildcard bind address is not something a client can dial
  host = "localhost" if parsed.host in {"0.0.0.0", "::", ""} else parsed.host
  url = f"http://{host}:{parsed.port}/status"

  try:
    with request.urlopen(url, timeout=1.0) as resp:  # nosec B310
      data = json.loads(resp.read().decode("utf-8"))
  except (error.URLError, error.HTTPError, TimeoutError, OSError):
    print(f"logdepot status: UNREACHABLE at {url}", file=sys.stderr)
    sys.exit(2)

  print(f"logdepot status: {str(data.get('status', 'unknown')).upper()} ({url})")
  print(f"Service: {data.get('service_name')} v{data.get('version')}, max batch {data.get('max_batch_size')}")


def _run_init_db() -> None:
  from .errors import StorageError
  from .storage import create_storage

  cfg = load_service_config()
  try:
    create_storage(cfg.database_url).initialize()
  except StorageError as e:
    print(f"logdepot init-db: FAILED: {e}", file=sys.stderr)
    sys.exit(2)
  print("logdepot init-db: logs table ready")


if __name__ == "__main__":
  main()
