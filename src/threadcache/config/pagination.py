import os

_SORTS = ("points", "recent")
_ORDERS = ("asc", "desc")


class Pagination:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("threadcache", {}).get("pagination", {})
        self.POSTS_PAGE_SIZE: int = int(cfg.get("posts_page_size", os.getenv("POSTS_PAGE_SIZE", "10")))
        self.COMMENTS_PAGE_SIZE: int = int(cfg.get("comments_page_size", os.getenv("COMMENTS_PAGE_SIZE", "10")))
        self.REPLY_PAGE_SIZE: int = int(cfg.get("reply_page_size", os.getenv("REPLY_PAGE_SIZE", "2")))
        self.DEFAULT_SORT: str = str(cfg.get("default_sort", os.getenv("DEFAULT_SORT", "points")))
        self.DEFAULT_ORDER: str = str(cfg.get("default_order", os.getenv("DEFAULT_ORDER", "desc")))

        for name in ("POSTS_PAGE_SIZE", "COMMENTS_PAGE_SIZE", "REPLY_PAGE_SIZE"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.DEFAULT_SORT not in _SORTS:
            raise ValueError(f"DEFAULT_SORT must be one of {_SORTS}")
        if self.DEFAULT_ORDER not in _ORDERS:
            raise ValueError(f"DEFAULT_ORDER must be one of {_ORDERS}")
