# Nightflow - Example Usage
#
#     python example.py path/to/payload.json

import sys

from nightflow import Nightflow
from nightflow.config import configure_logging, get_settings

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

if len(sys.argv) < 2:
    print("usage: python example.py PAYLOAD.json")
    sys.exit(1)

nf = Nightflow.from_file(sys.argv[1], settings=settings)

print("Nightflow - Overnight Execution Flow Analytics")
print("=" * 50)

summary = nf.summary()
print(f"Observations: {summary.observations} across {summary.unique_symbols} symbols")
print(f"Total notional: ${summary.total_notional:,.0f}")
print(f"Avg captured alpha: {summary.avg_captured_alpha:+.1f} bps")
print(f"Directional consistency: {summary.consistency_pct:.1f}%")

risk = nf.risk()
print(f"\nVaR {risk.confidence:.0f}%: {risk.var:+.1f} bps   CVaR: {risk.cvar:+.1f} bps")
print(f"Notional Gini: {risk.gini:.3f}   Top decile share: {risk.top_decile_pct:.1f}%")

regimes = nf.regimes()
print(f"\nCurrent regime ({regimes.window}d window): {regimes.current.value.upper()}")
print(f"UP days: {regimes.up_days}   DOWN days: {regimes.down_days}")

print("\nTop 5 symbols by avg captured alpha:")
for row in nf.screener()[:5]:
    print(f"  {row.key:<8} {row.captured_alpha.mean:+8.1f} bps  ({row.count} obs)")
