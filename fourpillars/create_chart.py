"""
Chart creation library.
Computes a BaZi natal chart from birth data, writes chart_data JSON.

Birth time can be given either as a local clock time ("HH:MM") or as a
branch-hour index (0-11). A clock time with coordinates is converted to
the UTC+8 clock using the birth place's time zone (handles historical DST);
a clock time without coordinates is read as UTC+8 directly.

Usage from Python:
    from fourpillars.create_chart import compute_and_save_chart
    compute_and_save_chart(
        name="Alex", birth_date="1990-03-15", birth_time="10:30",
        gender="male", latitude=37.7749, longitude=-122.4194,
    )
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from fourpillars.astro_calendar import (
    BEIJING_TZ,
    birth_instant as instant_for_hour,
    hour_index_for,
    local_to_beijing,
    to_beijing_time,
    utc_offset_for,
)
from fourpillars.engine import BaziEngine, default_engine
from fourpillars.liunian import natal_interactions
from fourpillars.pillars import FourPillars, ZiHourPolicy
from fourpillars.sexagenary import PillarRole, ten_god

logger = logging.getLogger(__name__)

DEFAULT_CHART_DIR = Path(__file__).parent.parent / "chart_data"


# ============================================================
# CHART COMPUTATION
# ============================================================

def map_ten_gods(four_pillars: FourPillars) -> list[dict]:
    """Ten God of every visible and hidden stem, relative to the Day Master."""
    day_master = four_pillars.day_master
    result = []
    for pillar in four_pillars.pillars:
        if pillar.role is PillarRole.DAY:
            stem_god = "Day Master (日主)"
        else:
            stem_god = ten_god(day_master, pillar.stem).label

        hidden = []
        for stem, weight in pillar.branch.weighted_hidden_stems():
            hidden.append({
                "stem": stem.pinyin,
                "chinese": stem.chinese,
                "element": stem.element.value,
                "weight": weight,
                "ten_god": ten_god(day_master, stem).label,
            })

        result.append({
            "position": pillar.role.value,
            "stem": pillar.stem.pinyin,
            "stem_ten_god": stem_god,
            "branch": pillar.branch.pinyin,
            "hidden_stems": hidden,
        })
    return result


def compute_chart(birth_instant: datetime, hour_index: int, gender: str,
                  steps: int = 10, target_year: Optional[int] = None,
                  zi_policy: Optional[ZiHourPolicy] = None,
                  engine: Optional[BaziEngine] = None) -> dict:
    """
    Compute a full BaZi chart.

    Args:
        birth_instant: UTC+8 birth moment (naive values are read as UTC+8)
        hour_index: branch hour 0-11
        gender: "male" or "female", decides the Da Yun direction
        steps: number of Da Yun steps
        target_year: year of the Liu Nian overlay (default: the current UTC+8 year)

    Returns:
        Chart dict with pillars, ten gods, natal interactions, strength,
        Da Yun and the Liu Nian of the target year.
    """
    engine = engine or default_engine()
    fp = engine.resolve_four_pillars(birth_instant, hour_index, zi_policy)
    da_yun = engine.compute_da_yun(fp, gender, steps)
    strength = engine.assess_strength(fp)

    if target_year is None:
        target_year = datetime.now(BEIJING_TZ).year
    age = target_year - fp.birth_instant.year
    current_step = da_yun.active_step(age)
    liu_nian = engine.compute_liu_nian(fp, current_step, target_year)

    chart = fp.to_dict()
    chart.update({
        "gender": gender,
        "ten_gods": map_ten_gods(fp),
        "natal_interactions": [i.to_dict() for i in natal_interactions(fp)],
        "strength": strength.to_dict(),
        "da_yun": da_yun.to_dict(),
        "current_da_yun": current_step.to_dict() if current_step else None,
        "liu_nian": liu_nian.to_dict(),
    })
    return chart


# ============================================================
# BIRTH DATA
# ============================================================

def resolve_birth_moment(birth_date: Union[str, date], birth_time: Optional[str] = None,
                         hour_index: Optional[int] = None,
                         latitude: Optional[float] = None,
                         longitude: Optional[float] = None) -> tuple[datetime, int, dict]:
    """
    Turn user birth data into (UTC+8 instant, hour index, time zone info).

    An explicit hour_index wins over the one derived from the clock time.
    """
    if isinstance(birth_date, str):
        birth_date = date.fromisoformat(birth_date)

    if birth_time is None:
        if hour_index is None:
            raise ValueError("Either birth_time or hour_index is required")
        instant = instant_for_hour(birth_date, hour_index)
        return instant, hour_index, {"timezone": "UTC+08:00", "timezone_source": "hour_index"}

    hour, minute = map(int, birth_time.split(":"))
    local_dt = datetime(birth_date.year, birth_date.month, birth_date.day, hour, minute)

    if latitude is not None and longitude is not None:
        clock_offset, tz_name, dst_detected = utc_offset_for(latitude, longitude, local_dt)
        instant = local_to_beijing(local_dt, latitude, longitude)
        tz_sign = "+" if clock_offset >= 0 else ""
        tz_int = int(clock_offset) if clock_offset == int(clock_offset) else clock_offset
        tz_info = {
            "timezone": f"{tz_name} (UTC{tz_sign}{tz_int})",
            "utc_offset": clock_offset,
            "dst_detected": dst_detected,
            "timezone_source": "auto",
        }
    else:
        instant = to_beijing_time(local_dt)
        tz_info = {"timezone": "UTC+08:00", "timezone_source": "assumed"}

    if hour_index is None:
        hour_index = hour_index_for(instant.hour)
    return instant, hour_index, tz_info


def compute_and_save_chart(name: str, birth_date: Union[str, date], gender: str,
                           birth_time: Optional[str] = None,
                           hour_index: Optional[int] = None,
                           latitude: Optional[float] = None,
                           longitude: Optional[float] = None,
                           city: Optional[str] = None,
                           country: Optional[str] = None,
                           steps: int = 10,
                           target_year: Optional[int] = None,
                           zi_policy: Optional[ZiHourPolicy] = None,
                           chart_dir: Optional[Path] = None,
                           engine: Optional[BaziEngine] = None) -> dict:
    """
    Compute a natal chart and save it to chart_data/<name>.json.

    Returns:
        dict with keys: path, timezone, birth_instant, pillars, day_master,
        strength, starting_age
    """
    instant, hour_index, tz_info = resolve_birth_moment(
        birth_date, birth_time, hour_index, latitude, longitude
    )
    bazi = compute_chart(instant, hour_index, gender, steps=steps,
                         target_year=target_year, zi_policy=zi_policy, engine=engine)

    chart_data = {
        "user": {
            "name": name,
            "birth_date": str(birth_date),
            "birth_time_clock": birth_time,
            "birth_instant": instant.isoformat(),
            "hour_index": hour_index,
            "gender": gender,
            "zi_policy": bazi["debug"]["zi_policy"],
            "steps": steps,
            "location": {
                "city": city,
                "country": country,
                "latitude": latitude,
                "longitude": longitude,
            },
            **tz_info,
        },
        "bazi": bazi,
    }

    chart_dir = Path(chart_dir) if chart_dir else DEFAULT_CHART_DIR
    chart_dir.mkdir(parents=True, exist_ok=True)
    filename = name.lower().replace(" ", "_")
    chart_path = chart_dir / f"{filename}.json"

    with open(chart_path, "w", encoding="utf-8") as f:
        json.dump(chart_data, f, indent=2, ensure_ascii=False)
    logger.info("Saved chart for %s to %s", name, chart_path)

    pillars = bazi["pillars"]
    return {
        "path": str(chart_path),
        "timezone": tz_info["timezone"],
        "birth_instant": instant.isoformat(),
        "pillars": {pos: pillars[pos]["combined"] for pos in ("year", "month", "day", "hour")},
        "day_master": bazi["day_master"]["chinese"],
        "zodiac_animal": bazi["zodiac_animal"],
        "strength": bazi["strength"]["level"],
        "starting_age": bazi["da_yun"]["starting_age"],
    }
