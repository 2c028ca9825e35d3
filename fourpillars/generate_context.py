"""
Generate reading context for a user on a given date.

Reloads a saved chart, re-resolves the natal pillars from the stored birth
instant and produces one JSON payload: the day's calendar pillars, the
Liu Nian overlay in force on that date and the active Da Yun step.

Usage:
    python -m fourpillars.generate_context --user sample --date 2026-02-15
"""

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from fourpillars.astro_calendar import BEIJING_TZ, day_of_week, to_beijing_time
from fourpillars.create_chart import DEFAULT_CHART_DIR
from fourpillars.engine import BaziEngine, default_engine
from fourpillars.pillars import ZiHourPolicy
from fourpillars.sexagenary import ten_god


def load_user_chart(user_name: str, chart_dir: Optional[Path] = None) -> dict:
    """Load a user's natal chart data from JSON file."""
    chart_path = Path(chart_dir or DEFAULT_CHART_DIR) / f"{user_name}.json"
    if not chart_path.exists():
        raise FileNotFoundError(f"No chart data found for user '{user_name}' at {chart_path}")

    with open(chart_path, encoding="utf-8") as f:
        return json.load(f)


def generate_reading_context(user_name: str, target_date: str,
                             chart_dir: Optional[Path] = None,
                             engine: Optional[BaziEngine] = None) -> dict:
    """
    Build the context payload for `target_date` (ISO date or date-time, UTC+8).

    The annual overlay follows the BaZi year in force on that date, so a
    date before Li Chun still gets the previous year's pillar.
    """
    engine = engine or default_engine()
    user_chart = load_user_chart(user_name, chart_dir)
    user = user_chart["user"]

    fp = engine.resolve_four_pillars(
        datetime.fromisoformat(user["birth_instant"]),
        user["hour_index"],
        ZiHourPolicy(user.get("zi_policy", ZiHourPolicy.SAME_DAY.value)),
    )
    da_yun = engine.compute_da_yun(fp, user["gender"], user.get("steps", 10))

    moment = to_beijing_time(datetime.fromisoformat(target_date))
    bazi_year = engine.resolver.fate_year(moment)
    step = da_yun.active_step(bazi_year - fp.birth_instant.year)
    overlay = engine.compute_liu_nian(fp, step, bazi_year)

    day_pillars = engine.resolver.calendar_pillars(moment)
    day = day_pillars["day"]

    return {
        "generated_at": datetime.now(BEIJING_TZ).isoformat(),
        "target_date": target_date,
        "user": {
            "name": user["name"],
            "birth_date": user["birth_date"],
        },
        "calendar": {
            "today": day_of_week(moment),
            "pillars": {name: p.to_dict() for name, p in day_pillars.items()},
            "day_ten_god": ten_god(fp.day_master, day.stem).label,
            "solar_term": engine.calculator.current_term(moment).to_dict(),
        },
        "bazi": {
            "natal": user_chart["bazi"],
            "current_year": overlay.to_dict(),
            "current_da_yun": step.to_dict() if step else None,
        },
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate BaZi reading context")
    parser.add_argument("--user", required=True, help="User name (matches chart_data filename)")
    parser.add_argument("--date", required=True, help="Target date (YYYY-MM-DD)")
    parser.add_argument("--output", help="Output file path (default: chart_data/<user>_context.json)")

    args = parser.parse_args()

    context = generate_reading_context(args.user, args.date)

    output = json.dumps(context, indent=2, ensure_ascii=False)

    out_path = args.output or str(DEFAULT_CHART_DIR / f"{args.user}_context.json")
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(output)
    print(out_path)
