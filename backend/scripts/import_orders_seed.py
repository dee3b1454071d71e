"""Load CSV seed orders through the order service."""

from __future__ import annotations

import asyncio
import csv
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

import pydantic

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from orderhub import schemas  # noqa: E402
from orderhub.cache import ResultCache  # noqa: E402
from orderhub.config import get_settings  # noqa: E402
from orderhub.database import build_engine, build_sessionmaker, create_tables  # noqa: E402
from orderhub.services.order_service import OrderQueryService  # noqa: E402
from orderhub.store import SqlOrderStore  # noqa: E402


@dataclass
class ParsedSeed:
    orders: List[schemas.OrderCreate] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def parse_row(row: dict[str, str]) -> schemas.OrderCreate:
    data = {key: value for key, value in row.items() if value not in ("", None)}
    return schemas.OrderCreate.model_validate(data)


def parse_rows(rows: Iterable[dict[str, str]]) -> ParsedSeed:
    parsed = ParsedSeed()
    for line_no, row in enumerate(rows, start=2):
        try:
            parsed.orders.append(parse_row(row))
        except pydantic.ValidationError as exc:
            parsed.rejected.append(f"line {line_no}: {exc.error_count()} error(s)")
    return parsed


async def import_csv(csv_path: Path, account_id: str) -> ParsedSeed:
    with csv_path.open(newline="", encoding="utf-8") as fh:
        parsed = parse_rows(csv.DictReader(fh))

    settings = get_settings()
    engine = build_engine(settings)
    try:
        await create_tables(engine)
        service = OrderQueryService(SqlOrderStore(build_sessionmaker(engine)), ResultCache())
        await service.load_seed_data(parsed.orders, account_id)
    finally:
        await engine.dispose()
    return parsed


def main() -> None:
    csv_path = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT.parent / "data" / "orders_seed.csv"
    account_id = sys.argv[2] if len(sys.argv) > 2 else get_settings().default_account
    if not csv_path.exists():
        raise SystemExit(f"CSV file not found: {csv_path}")

    parsed = asyncio.run(import_csv(csv_path, account_id))
    print(f"Created {len(parsed.orders)} orders for {account_id}, rejected {len(parsed.rejected)} rows.")
    for reason in parsed.rejected:
        print(f"  - {reason}")


if __name__ == "__main__":
    main()
