"""
로깅 모듈.

[ 역할 ]
    "intraday_backtest" 로거에 일별 파일 핸들러 + 콘솔 핸들러를 붙인다.
    엔진의 시뮬레이션 진행(INFO), 거래/일별 자산(DEBUG), 설정 경고(WARNING)가
    이 로거 아래로 모인다.

[ 재설정 ]
    setup_logger()는 여러 번 호출해도 핸들러가 중복되지 않는다.
    다시 호출하면 레벨을 로거와 기존 핸들러 모두에 적용하고,
    log_dir이 바뀌었으면 파일 핸들러를 새 경로로 교체한다 (None이면 제거).

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/intraday_backtest_20240601.log)

[ 호출하는 곳 ]
    - run_backtest.py에서 setup_from_config(config) 호출
    - 각 모듈은 logging.getLogger("intraday_backtest.xxx")로 하위 로거 사용
"""

import logging
import sys
from datetime import date
from pathlib import Path

from intraday_backtest.utils.config import Config

LOGGER_NAME = "intraday_backtest"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: str | int) -> int:
    """'INFO' / 'debug' / 20 → logging 레벨 숫자.

    Raises:
        ValueError: 알 수 없는 레벨 이름
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"알 수 없는 로그 레벨: {level}")
    return resolved


def log_file_path(log_dir: str | Path, name: str = LOGGER_NAME, day: date | None = None) -> Path:
    day = day or date.today()
    return Path(log_dir) / f"{name}_{day:%Y%m%d}.log"


def _is_console(handler: logging.Handler) -> bool:
    # FileHandler도 StreamHandler의 하위 클래스
    return type(handler) is logging.StreamHandler


def setup_logger(
    level: str | int = "INFO",
    log_dir: str | Path | None = "logs",
    name: str = LOGGER_NAME,
    console: bool = True,
) -> logging.Logger:
    """로거 설정 (재호출 시 갱신).

    Args:
        level: 로거 + 모든 핸들러에 적용할 레벨
        log_dir: 일별 로그 파일 디렉토리. None이면 파일 미기록
        name: 설정할 로거 이름
        console: stdout 핸들러 사용 여부

    Returns:
        설정된 logging.Logger
    """
    numeric_level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # 파일 핸들러: 경로가 다르면 교체
    target = log_file_path(log_dir, name).resolve() if log_dir is not None else None
    for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
        if target is None or Path(handler.baseFilename) != target:
            logger.removeHandler(handler)
            handler.close()
    has_file = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    if target is not None and not has_file:
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 콘솔 핸들러
    consoles = [h for h in logger.handlers if _is_console(h)]
    if console and not consoles:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    elif not console:
        for handler in consoles:
            logger.removeHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    return logger


def setup_from_config(config: Config, console: bool = True) -> logging.Logger:
    """Config의 log_level / log_dir로 로거 설정."""
    return setup_logger(level=config.log_level, log_dir=config.log_dir, console=console)
