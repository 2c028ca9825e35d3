"""
CLI wrapper for the chart computation.

Usage:
    python -m fourpillars.run --birth-date YYYY-MM-DD (--birth-time HH:MM | --hour-index N) \
        --gender GENDER [--latitude LAT --longitude LON] [--steps N] [--year YEAR] \
        [--zi-policy same_day|next_day] [--name NAME --save]
    python -m fourpillars.run --solar-terms YEAR
"""

import argparse
import json
import logging
import sys

from fourpillars.create_chart import compute_and_save_chart, compute_chart, resolve_birth_moment
from fourpillars.errors import FourPillarsError
from fourpillars.pillars import ZiHourPolicy
from fourpillars.solar_terms import solar_terms_for_year

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a BaZi Four Pillars chart.")
    parser.add_argument("--solar-terms", dest="solar_terms", type=int, metavar="YEAR",
                        help="Print the 24 solar terms of YEAR and exit")
    parser.add_argument("--name")
    parser.add_argument("--birth-date", dest="birth_date")
    parser.add_argument("--birth-time", dest="birth_time", help="Local clock time HH:MM")
    parser.add_argument("--hour-index", dest="hour_index", type=int, choices=range(12),
                        help="Branch hour 0-11 (0 = Zi)")
    parser.add_argument("--gender", choices=["male", "female"])
    parser.add_argument("--latitude", type=float)
    parser.add_argument("--longitude", type=float)
    parser.add_argument("--city")
    parser.add_argument("--country")
    parser.add_argument("--steps", type=int, default=10)
    parser.add_argument("--year", type=int, help="Liu Nian target year (default: current year)")
    parser.add_argument("--zi-policy", dest="zi_policy", default=ZiHourPolicy.SAME_DAY.value,
                        choices=[p.value for p in ZiHourPolicy])
    parser.add_argument("--save", action="store_true", help="Write chart_data/<name>.json")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.solar_terms is not None:
            result = [t.to_dict() for t in solar_terms_for_year(args.solar_terms)]
        else:
            if not args.birth_date or not args.gender:
                parser.error("--birth-date and --gender are required")
            if args.birth_time is None and args.hour_index is None:
                parser.error("one of --birth-time or --hour-index is required")
            zi_policy = ZiHourPolicy(args.zi_policy)

            if args.save:
                if not args.name:
                    parser.error("--save requires --name")
                result = compute_and_save_chart(
                    name=args.name,
                    birth_date=args.birth_date,
                    gender=args.gender,
                    birth_time=args.birth_time,
                    hour_index=args.hour_index,
                    latitude=args.latitude,
                    longitude=args.longitude,
                    city=args.city,
                    country=args.country,
                    steps=args.steps,
                    target_year=args.year,
                    zi_policy=zi_policy,
                )
            else:
                instant, hour_index, _ = resolve_birth_moment(
                    args.birth_date, args.birth_time, args.hour_index,
                    args.latitude, args.longitude,
                )
                result = compute_chart(instant, hour_index, args.gender, steps=args.steps,
                                       target_year=args.year, zi_policy=zi_policy)
    except (FourPillarsError, ValueError) as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
