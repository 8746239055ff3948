import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

logger = logging.getLogger("config")


def get_db_path() -> str:
    raw = os.environ.get("DB_PATH", "./job_harvest.sqlite3")
    return os.path.abspath(raw)


DEFAULT_LOCATIONS_PATH = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "data", "common-geoids.json")
)


def get_locations_path() -> str:
    raw = os.environ.get("LOCATIONS_PATH") or DEFAULT_LOCATIONS_PATH
    return os.path.abspath(raw)


@dataclass(frozen=True)
class RuntimeConfig:
    # enrichment
    batch_size: int = 5
    page_timeout_ms: int = 30000
    max_retries: int = 2
    batch_delay_s: float = 5.0
    retry_delay_s: float = 2.0
    detail_settle_ms: int = 2000
    selector_wait_ms: int = 10000
    min_description_length: int = 100
    min_viable_description: int = 50
    max_candidates: int = 100

    # crawl
    settle_delay_s: float = 5.0
    search_delay_s: float = 3.0
    error_delay_s: float = 2.0
    nav_timeout_ms: int = 30000

    # store
    retention_days: int = 30

    # browser / boards
    headless: bool = True
    crawl_user_data_dir: str = ""
    board_fetch_mode: str = "playwright"
    board_search_terms: Tuple[str, ...] = ("Cybersecurity",)


def _parse_int_with_floor(
    env_name: str,
    *,
    default_value: int,
    minimum_floor: int,
) -> int:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        value = int(default_value)
    else:
        try:
            value = int(str(raw).strip())
        except Exception:
            logger.warning(
                "[config] %s=%r is invalid. Using default %s.",
                env_name,
                raw,
                default_value,
            )
            value = int(default_value)

    if value < minimum_floor:
        logger.warning(
            "[config] %s=%s below minimum (%s). Using %s.",
            env_name,
            value,
            minimum_floor,
            minimum_floor,
        )
        value = minimum_floor

    return value


def _parse_float_with_floor(
    env_name: str,
    *,
    default_value: float,
    minimum_floor: float,
) -> float:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        value = float(default_value)
    else:
        try:
            value = float(str(raw).strip())
        except Exception:
            logger.warning(
                "[config] %s=%r is invalid. Using default %s.",
                env_name,
                raw,
                default_value,
            )
            value = float(default_value)

    if value < minimum_floor:
        logger.warning(
            "[config] %s=%s below minimum (%s). Using %s.",
            env_name,
            value,
            minimum_floor,
            minimum_floor,
        )
        value = minimum_floor

    return value


def _parse_bool(env_name: str, *, default_value: bool) -> bool:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        return bool(default_value)

    normalized = str(raw).strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    logger.warning(
        "[config] %s=%r is invalid boolean. Using default %s.",
        env_name,
        raw,
        default_value,
    )
    return bool(default_value)


def _parse_choice(env_name: str, *, default_value: str, choices: Tuple[str, ...]) -> str:
    raw = (os.getenv(env_name) or "").strip().lower()
    if not raw:
        return default_value
    if raw not in choices:
        logger.warning(
            "[config] %s=%r not one of %s. Using default %s.",
            env_name,
            raw,
            "|".join(choices),
            default_value,
        )
        return default_value
    return raw


def _parse_terms(env_name: str, *, default_value: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(env_name)
    if raw is None or not str(raw).strip():
        return default_value
    terms = tuple(t.strip() for t in str(raw).split(",") if t.strip())
    return terms or default_value


def load_runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        batch_size=_parse_int_with_floor("ENRICH_BATCH_SIZE", default_value=5, minimum_floor=1),
        page_timeout_ms=_parse_int_with_floor("ENRICH_PAGE_TIMEOUT_MS", default_value=30000, minimum_floor=1000),
        max_retries=_parse_int_with_floor("ENRICH_MAX_RETRIES", default_value=2, minimum_floor=0),
        batch_delay_s=_parse_float_with_floor("ENRICH_BATCH_DELAY_S", default_value=5.0, minimum_floor=0.0),
        retry_delay_s=_parse_float_with_floor("ENRICH_RETRY_DELAY_S", default_value=2.0, minimum_floor=0.0),
        detail_settle_ms=_parse_int_with_floor("ENRICH_SETTLE_MS", default_value=2000, minimum_floor=0),
        selector_wait_ms=_parse_int_with_floor("ENRICH_SELECTOR_WAIT_MS", default_value=10000, minimum_floor=0),
        min_description_length=_parse_int_with_floor("ENRICH_MIN_DESCRIPTION_LEN", default_value=100, minimum_floor=1),
        min_viable_description=_parse_int_with_floor("ENRICH_MIN_VIABLE_LEN", default_value=50, minimum_floor=1),
        max_candidates=_parse_int_with_floor("ENRICH_MAX_CANDIDATES", default_value=100, minimum_floor=1),
        settle_delay_s=_parse_float_with_floor("CRAWL_SETTLE_DELAY_S", default_value=5.0, minimum_floor=0.0),
        search_delay_s=_parse_float_with_floor("CRAWL_SEARCH_DELAY_S", default_value=3.0, minimum_floor=0.0),
        error_delay_s=_parse_float_with_floor("CRAWL_ERROR_DELAY_S", default_value=2.0, minimum_floor=0.0),
        nav_timeout_ms=_parse_int_with_floor("CRAWL_NAV_TIMEOUT_MS", default_value=30000, minimum_floor=1000),
        retention_days=_parse_int_with_floor("JOB_RETENTION_DAYS", default_value=30, minimum_floor=1),
        headless=_parse_bool("BROWSER_HEADLESS", default_value=True),
        crawl_user_data_dir=(os.getenv("CRAWL_USER_DATA_DIR") or "").strip(),
        board_fetch_mode=_parse_choice(
            "BOARD_FETCH_MODE",
            default_value="playwright",
            choices=("playwright", "requests"),
        ),
        board_search_terms=_parse_terms("BOARD_SEARCH_TERMS", default_value=("Cybersecurity",)),
    )


@lru_cache(maxsize=1)
def get_runtime_config() -> RuntimeConfig:
    cfg = load_runtime_config()

    logger.info(
        "[config] effective ENRICH_BATCH_SIZE=%s ENRICH_PAGE_TIMEOUT_MS=%s ENRICH_MAX_RETRIES=%s "
        "ENRICH_BATCH_DELAY_S=%s ENRICH_MAX_CANDIDATES=%s ENRICH_MIN_DESCRIPTION_LEN=%s",
        cfg.batch_size,
        cfg.page_timeout_ms,
        cfg.max_retries,
        cfg.batch_delay_s,
        cfg.max_candidates,
        cfg.min_description_length,
    )
    logger.info(
        "[config] effective CRAWL_SETTLE_DELAY_S=%s CRAWL_SEARCH_DELAY_S=%s JOB_RETENTION_DAYS=%s "
        "BROWSER_HEADLESS=%s BOARD_FETCH_MODE=%s",
        cfg.settle_delay_s,
        cfg.search_delay_s,
        cfg.retention_days,
        str(cfg.headless).lower(),
        cfg.board_fetch_mode,
    )
    return cfg
