from __future__ import annotations

from dataclasses import asdict, dataclass

from . import __version__
from .config import load_service_config


@dataclass
class ServiceStatus:
  status: str
  service_name: str
  version: str
  host: str
  port: int
  max_batch_size: int


def get_status() -> dict:
  """
  Return a simple status payload for the service.
  """
  cfg = load_service_config()

  payload = ServiceStatus(
    status="healthy",
    service_name="logdepot",
    version=__version__,
    host=cfg.host,
    port=cfg.port,
    max_batch_size=cfg.max_batch_size,
  )
  return asdict(payload)
