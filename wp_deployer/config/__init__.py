from wp_deployer.config.settings import settings

__all__ = ["settings"]
