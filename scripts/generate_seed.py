"""Generate mock CRM order data as CSV."""

import csv
import random
from datetime import date, timedelta
from pathlib import Path

CATEGORIES = [
    "Electronics",
    "Clothing",
    "Books",
    "Home & Garden",
    "Sports",
    "Automotive",
    "Health & Beauty",
    "Toys & Games",
]
SOURCES = ["Online", "Store", "Phone", "Mobile App", "Social Media"]
STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled"]
LOCATIONS = ["New York", "California", "Texas", "Florida", "Illinois", "Michigan", "Washington", "Oregon"]
FIRST_NAMES = ["Alice", "Bob", "Carol", "David", "Emma", "Frank", "Grace", "Henry", "Ivy", "Jack"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Davis", "Miller", "Wilson", "Moore"]

rows = []
today = date(2025, 9, 15)
random.seed(42)
for idx in range(1, 101):
    # roughly one order in ten has no amount recorded yet
    amount = "" if random.random() < 0.1 else round(random.uniform(9, 1499), 2)
    rows.append(
        {
            "customer": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
            "category": random.choice(CATEGORIES),
            "date": (today - timedelta(days=random.randint(0, 90))).isoformat(),
            "source": random.choices(SOURCES, weights=[6, 3, 1, 4, 2])[0],
            "geo": random.choice(LOCATIONS),
            "amount": amount,
            "status": random.choices(STATUSES, weights=[3, 3, 4, 6, 1])[0],
        }
    )

path = Path("data/orders_seed.csv")
path.parent.mkdir(parents=True, exist_ok=True)
with path.open("w", newline="", encoding="utf-8") as file:
    writer = csv.DictWriter(file, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    writer.writerows(rows)

print(f"Generated {len(rows)} rows -> {path}")
