from couch_client.config.runtime import ClientSettings

__all__ = ["ClientSettings"]
