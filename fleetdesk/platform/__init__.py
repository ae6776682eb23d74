from fleetdesk.config import Settings, settings as default_settings
from fleetdesk.platform.base import Platform


def build_platform(config: Settings = None) -> Platform:
    """Platform adapter selected by ``PLATFORM_MODE``."""
    config = config or default_settings
    if config.PLATFORM_MODE == "remote":
        from fleetdesk.platform.rest import build_rest_platform

        return build_rest_platform(
            config.PLATFORM_URL,
            config.PLATFORM_ANON_KEY,
            timeout=config.PLATFORM_TIMEOUT_SECONDS,
        )

    from fleetdesk.platform.local import build_local_platform

    return build_local_platform(
        config.DATABASE_URL,
        storage_url=config.STORAGE_BASE_URL,
        public_url=f"{config.PUBLIC_BASE_URL}{config.API_PREFIX}",
        secret_key=config.SECRET_KEY,
    )
