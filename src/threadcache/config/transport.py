import os


class Transport:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("threadcache", {}).get("transport", {})
        self.API_BASE_URL: str = str(cfg.get("base_url", os.getenv("API_BASE_URL", "http://localhost:3000")))
        self.API_PREFIX: str = str(cfg.get("prefix", os.getenv("API_PREFIX", "/api")))
