import os


class Validation:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("threadcache", {}).get("validation", {})
        self.MIN_COMMENT_LENGTH: int = int(cfg.get("min_comment_length", os.getenv("MIN_COMMENT_LENGTH", "3")))
