from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import cast

from simple_term_menu import TerminalMenu  # type: ignore[import-untyped]

from src.papersim.config import SimConfig
from src.papersim.errors import SimError
from src.papersim.feeds.gamma import GammaProvider
from src.papersim.logger import SimLogger
from src.papersim.models import StrategyName
from src.papersim.report import (
    backtest_lines,
    balance_lines,
    case_study_lines,
    leaderboard_lines,
    market_lines,
    overview_lines,
    position_lines,
    signal_lines,
    strategy_lines,
)
from src.papersim.simulator import Simulator

DIM = "\033[2m"
BOLD = "\033[1m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

USAGE = """
Usage:
  python main.py bet --market <slug> --side YES|NO --amount <usd> [--strategy <name>]
  python main.py sell --bet-id <id> [--price <0-1>]
  python main.py resolve                  Settle resolved markets
  python main.py refresh                  Update prices of open positions
  python main.py status [--strategy <name>]
  python main.py leaderboard              Rank strategies by ROI
  python main.py search <query>           Search active markets
  python main.py reset                    Reset all strategies to initial cash
  python main.py snapshot                 Capture market prices & volumes
  python main.py scan                     Detect anomalous moves
  python main.py auto-bet                 Run all 5 strategies
  python main.py fetch-history [--limit N]
  python main.py backtest [--plot]
  python main.py case-study [slug ...] [--top N]

Strategies: momentum, contrarian, status_quo, cheap_contracts, arb
Data directory: ./data (override with --data-dir <path>)
"""


def _ts() -> str:
    """Current wall-clock timestamp for log prefixing."""
    return f"{DIM}{datetime.now().strftime('%H:%M:%S')}{RESET}"


def _arg(args: list[str], flag: str) -> str | None:
    if flag not in args:
        return None
    idx = args.index(flag)
    return args[idx + 1] if idx + 1 < len(args) else None


def _positional(args: list[str], flags_with_values: tuple[str, ...] = ()) -> list[str]:
    out = []
    skip = False
    for a in args:
        if skip:
            skip = False
            continue
        if a in flags_with_values:
            skip = True
            continue
        if a.startswith("--"):
            continue
        out.append(a)
    return out


def _float_arg(args: list[str], flag: str) -> float | None:
    raw = _arg(args, flag)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        raise SimError(f"{flag} expects a number, got {raw!r}") from None


def _print(lines: list[str]) -> None:
    for line in lines:
        print(line)


def _choose(options: list[str], title: str) -> int | None:
    menu = TerminalMenu(options + ["[Exit]"], title=title, cycle_cursor=True, clear_screen=False)
    choice = cast("int | None", menu.show())
    if choice is None or choice == len(options):
        return None
    return choice


def cmd_bet(sim: Simulator, args: list[str]) -> None:
    market = _arg(args, "--market")
    amount = _float_arg(args, "--amount")
    if not market or amount is None:
        print(USAGE)
        sys.exit(1)
    side = _arg(args, "--side")
    if side is None:
        choice = _choose(["YES", "NO"], "Select a side:")
        if choice is None:
            print("Exiting.")
            return
        side = ["YES", "NO"][choice]
    strategy = _arg(args, "--strategy")
    if strategy is None:
        names = [s.value for s in StrategyName]
        choice = _choose(names, "Select a strategy ledger:")
        if choice is None:
            print("Exiting.")
            return
        strategy = names[choice]

    pos = sim.open_position(market, side, amount, strategy)
    cash = sim.store.load_portfolio().ledger(pos.strategy).cash
    print(f"\n{_ts()}  {GREEN}BET PLACED [{pos.strategy.value}]{RESET}")
    print(f"{_ts()}  {pos.question}")
    print(f"{_ts()}  Side: {pos.side.value} @ {pos.entry_price * 100:.1f}¢")
    print(f"{_ts()}  Shares: {pos.shares:,.2f} | Cost: ${pos.cost:,.2f}")
    print(f"{_ts()}  Bet ID: {pos.position_id}")
    print(f"{_ts()}  [{pos.strategy.value}] Balance: ${cash:,.2f}\n")


def cmd_sell(sim: Simulator, args: list[str]) -> None:
    bet_id = _arg(args, "--bet-id")
    if not bet_id:
        print(USAGE)
        sys.exit(1)
    record = sim.close_position(bet_id, _float_arg(args, "--price"))
    color = GREEN if record.pnl >= 0 else RED
    print(f"\n{_ts()}  {BOLD}BET SOLD [{record.strategy.value}]{RESET}")
    print(f"{_ts()}  {record.position.question}")
    print(
        f"{_ts()}  {record.position.side.value}: {record.position.entry_price * 100:.1f}¢ -> "
        f"{record.exit_price * 100:.1f}¢ | P&L {color}{record.pnl:+,.2f}{RESET}\n"
    )


def cmd_resolve(sim: Simulator) -> None:
    report = sim.resolve()
    if not report.records:
        print(f"{_ts()}  No markets have resolved yet ({report.pending} pending, {report.skipped} skipped).")
        return
    print(f"\n{_ts()}  Resolved {report.resolved} bet(s); {report.pending} pending, {report.skipped} skipped.")
    portfolio = sim.store.load_portfolio()
    _print(balance_lines({name: ledger.cash for name, ledger in portfolio.strategies.items()}))


def cmd_refresh(sim: Simulator) -> None:
    report = sim.refresh()
    print(f"{_ts()}  Refreshed {report.updated}/{report.total} positions ({report.skipped} skipped).")
    _print(position_lines(sim.store.load_positions()))


def cmd_status(sim: Simulator, args: list[str]) -> None:
    strategy = _arg(args, "--strategy")
    status = sim.status(strategy)
    print()
    if strategy:
        _print(strategy_lines(status.stats[0], status.history))
    else:
        _print(overview_lines(status.overview, status.stats))
    if status.positions:
        print(f"\n{BOLD}Open positions:{RESET}")
        _print(position_lines(status.positions))
    print()


def cmd_backtest(sim: Simulator, args: list[str]) -> None:
    print(f"\n{_ts()}  Replaying historical corpus with no-look-ahead entry pricing...")
    results = sim.backtest()
    print()
    _print(backtest_lines(results))
    print()

    output_dir = Path("output")
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, result in results.items():
        if result.event_log:
            log_path = output_dir / f"backtest_{name.value}.log"
            log_path.write_text("\n".join(result.event_log) + "\n")
            print(f"{_ts()}  Event log: {log_path} ({len(result.event_log)} events)")

    if not any(r.equity_curve for r in results.values()):
        return
    from src.papersim.plotting import plot_results

    if "--plot" in args:
        plot_choice: int | None = 0
    else:
        plot_menu = TerminalMenu(
            ["Open interactive chart", "Save chart to HTML only", "Skip"],
            title="Plot results?",
            cycle_cursor=True,
            clear_screen=False,
        )
        plot_choice = cast("int | None", plot_menu.show())
    out_html = "output/backtest_strategies.html"
    if plot_choice == 0:
        print(f"\n{_ts()}  Rendering interactive chart -> {out_html}...")
        plot_results(results, filename=out_html, open_browser=True)
    elif plot_choice == 1:
        print(f"\n{_ts()}  Saving chart to {out_html}...")
        plot_results(results, filename=out_html, open_browser=False)
        print(f"{_ts()}  {GREEN}Saved.{RESET}\n")


def cmd_case_study(sim: Simulator, args: list[str]) -> None:
    top = _float_arg(args, "--top")
    slugs = _positional(args, ("--top", "--data-dir"))
    result = sim.case_study(slugs or None, top=int(top) if top else 10)
    print()
    _print(case_study_lines(result.summary()))
    print()


def run(command: str, args: list[str], sim: Simulator) -> None:
    if command == "bet":
        cmd_bet(sim, args)
    elif command == "sell":
        cmd_sell(sim, args)
    elif command == "resolve":
        cmd_resolve(sim)
    elif command == "refresh":
        cmd_refresh(sim)
    elif command == "status":
        cmd_status(sim, args)
    elif command == "leaderboard":
        print()
        _print(leaderboard_lines(sim.leaderboard()))
        print()
    elif command == "search":
        query = " ".join(_positional(args, ("--data-dir",)))
        _print(market_lines(sim.search(query)))
    elif command == "reset":
        portfolio = sim.reset()
        _print(balance_lines({name: ledger.cash for name, ledger in portfolio.strategies.items()}))
    elif command == "snapshot":
        sim.snapshot()
    elif command == "scan":
        signals = sim.scan()
        if signals:
            print(f"\n{_ts()}  {len(signals)} anomal{'y' if len(signals) == 1 else 'ies'} detected:\n")
            _print(signal_lines(signals))
        else:
            print(f"{_ts()}  No significant moves detected.")
    elif command == "auto-bet":
        report = sim.auto_bet()
        print()
        _print(balance_lines(report.cash))
    elif command == "fetch-history":
        limit = _float_arg(args, "--limit")
        sim.fetch_history(int(limit) if limit else 1000)
    elif command == "backtest":
        cmd_backtest(sim, args)
    elif command == "case-study":
        cmd_case_study(sim, args)
    else:
        print(f"Unknown command: {command}")
        print(USAGE)
        sys.exit(1)


def main():
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(0)

    command, args = sys.argv[1], sys.argv[2:]
    config = SimConfig()
    data_dir = _arg(args, "--data-dir")
    if data_dir:
        config = config.with_data_dir(data_dir)

    sim = Simulator(config=config, provider=GammaProvider(config), logger=SimLogger(print_live=True))
    try:
        run(command, args, sim)
    except SimError as exc:
        print(f"{_ts()}  {RED}{exc}{RESET}")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
