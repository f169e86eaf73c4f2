"""
=============================================================================
장중(Intraday) 전략 백테스트 시스템
=============================================================================

[ 시스템 전체 구조 ]

    run_backtest.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         ├── data/bar_store.py      ← 종목별 5분봉/일봉 보관 (BarStore)
         │
         ├── signals/               ← 시그널 생성기 4종 + 결합기
         │     ├── mean_reversion.py  (VWAP 회귀)
         │     ├── momentum.py        (ATR 정규화 모멘텀)
         │     ├── technical.py       (RSI + 거래량)
         │     ├── gap_fade.py        (갭 페이드)
         │     └── combiner.py        (가중합 → 추천 등급)
         │
         └── backtest/engine.py     ← 장중 시뮬레이션 엔진
               │
               ├── backtest/timeline.py ← 전 종목 타임스탬프 → 거래일별 타임라인
               ├── backtest/rules.py    ← 매도/교체/매수 의사결정 테이블
               ├── data/portfolio.py    ← 현금/보유종목/거래기록 관리
               └── backtest/metrics.py  ← 성과 지표 계산


[ 데이터 흐름 ]

    1. config.yaml에서 백테스트 파라미터(BacktestConfig) 로드
    2. BarStore가 종목별 5분봉 + 일봉 DataFrame 제공
    3. timeline이 전 종목 타임스탬프를 합쳐 거래일별로 묶음
    4. 엔진이 30분(6봉)마다 의사결정:
         (1) 종목별 시그널 계산 → CombinedSignal 맵 완성 (동기화 지점)
         (2) 평가 → 매도 → 교체 → 매수 → 총자산 재계산
    5. 거래일 종료 시 일별 수익률 기록 → metrics.py가 성과 지표 계산
"""

__version__ = "0.1.0"
