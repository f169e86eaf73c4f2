"""
장중 백테스트 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (config.yaml 설정, 샘플 데이터)
    python run_backtest.py

    # 기간 / 종목 지정
    python run_backtest.py --days 20 --symbols AAPL MSFT NVDA

    # 파라미터 오버라이드 (BacktestConfig 필드, 가중치는 weights.xxx)
    python run_backtest.py -p buy_threshold=0.2 -p weights.technical=0.4

    # CSV 데이터 사용 ({SYMBOL}_intraday.csv / {SYMBOL}_daily.csv)
    python run_backtest.py --source csv --data-dir data --symbols AAPL MSFT

    # 시그널 계산 병렬화
    python run_backtest.py --workers 4

    # 파라미터 스윕 (config.yaml의 run.sweep 변형마다 실행, 데이터는 한 번만 로드)
    python run_backtest.py --sweep
"""

import argparse
import sys
from pathlib import Path

from intraday_backtest.backtest.engine import IntradayBacktestEngine, run_sweep
from intraday_backtest.backtest.metrics import BacktestResult
from intraday_backtest.data.bar_store import BarStore
from intraday_backtest.data.sample_data import generate_sample_universe
from intraday_backtest.utils.config import Config
from intraday_backtest.utils.logger import setup_from_config

DEFAULT_SAMPLE_SYMBOLS = [
    "AAPL", "MSFT", "NVDA", "AMZN", "GOOGL", "META", "TSLA", "AMD",
    "NFLX", "AVGO", "CRM", "ORCL", "ADBE", "INTC", "QCOM", "CSCO",
]

# 샘플 데이터는 첫날부터 자격(봉 12개)을 갖추도록 여유 거래일을 더 만든다
SAMPLE_WARMUP_DAYS = 5

# config.yaml에 run.sweep이 없을 때 --sweep 기본 변형
DEFAULT_SWEEP_VARIANTS = [
    {"max_positions": 15, "max_position_size": 0.07, "buy_threshold": 0.25},
    {"max_positions": 15, "max_position_size": 0.07, "buy_threshold": 0.35},
    {"max_positions": 15, "max_position_size": 0.07, "buy_threshold": 0.45},
    {"max_positions": 10, "max_position_size": 0.10, "buy_threshold": 0.35},
    {"max_positions": 20, "max_position_size": 0.05, "buy_threshold": 0.35},
]


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value or "e" in value.lower():
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def load_store(config: Config, source: str, symbols: list[str], days: int) -> BarStore:
    """데이터 소스에서 BarStore 구성."""
    if source == "sample":
        print(f"샘플 데이터 생성 중... ({len(symbols)}종목, {days + SAMPLE_WARMUP_DAYS}일)")
        intraday, daily = generate_sample_universe(symbols, days=days + SAMPLE_WARMUP_DAYS)
        return BarStore.from_frames(intraday, daily)

    print(f"CSV 데이터 로드 중... ({config.run.data_dir})")
    store = BarStore.from_csv_dir(config.run.data_dir, symbols)
    for symbol in store.get_symbols():
        print(f"  {symbol}: 장중 봉 {len(store.get_intraday_bars(symbol))}개, 일봉 {len(store.get_daily_bars(symbol))}개")
    return store


def print_result(result: BacktestResult, max_rows: int = 10):
    """결과 요약 + 일별 자산 표 출력."""
    print()
    print(result.summary())

    if result.daily_returns:
        step = max(1, len(result.daily_returns) // max_rows)
        print("\n일별 총 자산:")
        for d in result.daily_returns[::step]:
            print(f"  {d.date}  {d.value:>12,.2f}  ({d.daily_return * 100:+.2f}%)")

    sells = [t for t in result.trades if t.side == "sell"]
    if sells:
        print("\n최근 매도 거래 (최대 5건):")
        for t in sells[-5:]:
            print(f"  [{t.timestamp}] {t.symbol} {t.shares:.4f}주 @ {t.price:,.2f} -> {t.profit:+,.2f} ({t.kind})")


def print_sweep(results: dict[str, BacktestResult], days: int):
    """스윕 변형별 결과 비교 표 출력."""
    label_width = max(20, max((len(label) for label in results), default=0) + 2)
    columns = [
        ("총 수익률", lambda r: f"{r.total_return:+.2f}%"),
        ("샤프", lambda r: f"{r.sharpe:.3f}"),
        ("MDD", lambda r: f"-{r.max_drawdown:.2f}%"),
        ("거래", lambda r: f"{r.total_trades}"),
        ("승률", lambda r: f"{r.win_rate:.1f}%"),
        ("거래비용", lambda r: f"{r.total_tx_costs:,.2f}"),
    ]
    width = label_width + 12 * len(columns)

    print(f"\n{'=' * width}")
    print(f"파라미터 스윕 결과 ({len(results)}개 변형, {days}일)")
    print(f"{'=' * width}")

    header = f"{'변형':<{label_width}}" + "".join(f"{name:>12}" for name, _ in columns)
    print(header)
    print("-" * width)
    for label, result in results.items():
        print(f"{label:<{label_width}}" + "".join(f"{fmt(result):>12}" for _, fmt in columns))

    print(f"{'=' * width}")


def main():
    parser = argparse.ArgumentParser(description="장중 전략 백테스트 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로 (.yaml / .json)")
    parser.add_argument("--source", type=str, default="sample", choices=["sample", "csv"], help="데이터 소스")
    parser.add_argument("--data-dir", type=str, default=None, help="CSV 데이터 디렉토리 (--source csv)")
    parser.add_argument("--days", type=int, default=None, help="백테스트 거래일 수")
    parser.add_argument("--symbols", nargs="+", default=None, help="대상 종목")
    parser.add_argument("--workers", type=int, default=None, help="시그널 계산 스레드 수")
    parser.add_argument("-p", "--param", action="append", default=[], help="설정 오버라이드 (예: -p stop_loss=-3)")
    parser.add_argument("--sweep", action="store_true", help="config의 run.sweep 변형마다 실행해 비교")
    args = parser.parse_args()

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_json(config_path) if config_path.suffix == ".json" else Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    if args.data_dir:
        config.run.data_dir = args.data_dir
    days = args.days or config.run.backtest_days
    workers = args.workers or config.run.signal_workers
    symbols = args.symbols or config.run.symbols or DEFAULT_SAMPLE_SYMBOLS[: config.run.sample_symbols]

    try:
        # 로거
        setup_from_config(config)

        # CLI 파라미터 오버라이드
        backtest_config = config.backtest
        if args.param:
            overrides = dict(parse_param(p) for p in args.param)
            print(f"파라미터 오버라이드: {overrides}")
            backtest_config = backtest_config.with_overrides(**overrides)

        # ─── 스윕 모드: 데이터는 한 번만 로드 ─────────────────────────────
        if args.sweep:
            variants = config.run.sweep or DEFAULT_SWEEP_VARIANTS
            store = load_store(config, args.source, symbols, days)
            print(f"\n{len(variants)}개 설정 변형 실행...")
            results = run_sweep(
                store, backtest_config, variants,
                symbols=symbols, backtest_days=days, signal_workers=workers,
            )
            print_sweep(results, days)
            return

        # ─── 단일 실행 모드 ─────────────────────────────────────────────
        engine = IntradayBacktestEngine(backtest_config, signal_workers=workers)
        store = load_store(config, args.source, symbols, days)
        result = engine.run_backtest(store, symbols=symbols, backtest_days=days)
    except ValueError as e:
        print(f"\n오류: {e}")
        sys.exit(1)

    print_result(result)


if __name__ == "__main__":
    main()
