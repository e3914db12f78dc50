#!/usr/bin/env python3
"""
Rule Backtester CLI: backtest | fetch
Usage:
  python main.py backtest --strategy strategy_configs/sma_crossover.json [--start 2024-01-01] [--end 2024-06-30]
  python main.py fetch --instrument BTCUSDT --interval 1d --start 2024-01-01 --end 2024-06-30
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rule_backtester.core.config import load_config
from rule_backtester.core.exceptions import BacktestError
from rule_backtester.core.logger import setup_logging
from rule_backtester.backtesting.engine import Backtester, BacktestResult, day_bounds, parse_date
from rule_backtester.data.binance_client import BinanceKlinesClient
from rule_backtester.data.store import SqliteCandleStore
from rule_backtester.strategies.builder import load_strategy_file

logger = logging.getLogger("rule_backtester")


def print_report(result: BacktestResult) -> None:
    m = result.metrics
    if m is None:
        return
    print(f"\n--- Backtest Results: {result.strategy_name} on {result.instrument} ---")
    print(f"Bars processed: {result.bars_processed}")
    print(f"Initial capital: {m.initial_capital:.2f}")
    print(f"Final equity: {m.final_equity:.2f}")
    print(f"Total PnL: {m.total_pnl:.2f} ({m.total_return_pct * 100:.2f}%)")
    print(f"Max drawdown: {m.max_drawdown_pct * 100:.2f}%")
    print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
    print(f"Executions: {m.total_executions}")
    print(f"Round trips: {m.round_trip_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
    print(f"Win rate: {m.win_rate * 100:.1f}%")
    print(f"Profit factor: {m.profit_factor:.2f}")
    print(f"Avg win: {m.avg_win_pnl:.2f}  Avg loss: {m.avg_loss_pnl:.2f}")
    for t in result.trades:
        side = "LONG" if t.is_long else "SHORT"
        print(
            f"  {side:5} {t.quantity:>6} {t.entry_time:%Y-%m-%d %H:%M} @ {t.entry_price:.4f} -> "
            f"{t.exit_time:%Y-%m-%d %H:%M} @ {t.exit_price:.4f}  pnl {t.pnl:.2f} ({t.return_pct * 100:.2f}%)"
        )


def run_backtest(args: argparse.Namespace) -> int:
    """Run a strategy file against the candle store."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.log_file_level)
    start = args.start or config.backtest_start
    end = args.end or config.backtest_end
    if not start or not end:
        logger.error("Backtest needs --start and --end (or backtest.start_date/end_date in config.yaml)")
        return 1
    capital = args.capital if args.capital is not None else config.initial_capital
    database = args.database or config.database_path
    try:
        strategy = load_strategy_file(args.strategy)
        store = SqliteCandleStore(database)
    except BacktestError as e:
        logger.error("%s", e)
        return 1
    print(strategy.describe())
    with store:
        backtester = Backtester(
            store,
            initial_capital=capital,
            commission_per_share=config.commission_per_share,
            commission_bps=config.commission_bps,
        )
        result = backtester.run(strategy, start, end)
    if not result.success:
        print(f"Backtest failed ({result.failed_phase}): {result.error}")
        return 1
    print_report(result)
    return 0


def run_fetch(args: argparse.Namespace) -> int:
    """Download historical candles from Binance into the candle store."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.log_file_level)
    database = args.database or config.database_path
    try:
        lo, hi = day_bounds(parse_date(args.start), parse_date(args.end))
        client = BinanceKlinesClient(config.binance_api_key, config.binance_api_secret, testnet=config.use_testnet)
        candles = client.get_historical_candles(args.instrument, args.interval, lo, hi)
        with SqliteCandleStore(database) as store:
            saved = store.save_candles(candles, args.instrument, args.interval)
    except BacktestError as e:
        logger.error("Fetch failed: %s", e)
        return 1
    if not saved:
        return 1
    print(f"Stored {len(candles)} candles for {args.instrument} {args.interval} in {database}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Rule Backtester CLI")
    sub = parser.add_subparsers(dest="mode", required=True)

    bt = sub.add_parser("backtest", help="Run a strategy over stored candles")
    bt.add_argument("--strategy", type=Path, required=True, help="Strategy JSON file")
    bt.add_argument("--start", default=None, help="Start date YYYY-MM-DD")
    bt.add_argument("--end", default=None, help="End date YYYY-MM-DD")
    bt.add_argument("--capital", type=float, default=None, help="Initial capital")
    bt.add_argument("--database", type=Path, default=None, help="SQLite candle database")
    bt.add_argument("--config", type=Path, default=None, help="Path to config.yaml")

    fetch = sub.add_parser("fetch", help="Download candles into the store")
    fetch.add_argument("--instrument", required=True, help="Symbol, e.g. BTCUSDT")
    fetch.add_argument("--interval", required=True, help="Timeframe, e.g. 1d, 5m, 30minute, day")
    fetch.add_argument("--start", required=True, help="Start date YYYY-MM-DD")
    fetch.add_argument("--end", required=True, help="End date YYYY-MM-DD")
    fetch.add_argument("--database", type=Path, default=None, help="SQLite candle database")
    fetch.add_argument("--config", type=Path, default=None, help="Path to config.yaml")

    args = parser.parse_args()
    if args.mode == "backtest":
        return run_backtest(args)
    return run_fetch(args)


if __name__ == "__main__":
    sys.exit(main())
