"""Connection configuration models."""

from .models import ConnectionConfig, ConnectOptions, LastWill, PublishOptions, make_client_id

__all__ = ["ConnectionConfig", "ConnectOptions", "LastWill", "PublishOptions", "make_client_id"]
