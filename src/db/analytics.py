# static figures for the admin dashboard; nothing here reads the store
from typing import Dict, List

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"

DAILY_SALES: List[Dict] = [
    {"day": "Mon", "sales": 4500, "transactions": 45},
    {"day": "Tue", "sales": 5200, "transactions": 52},
    {"day": "Wed", "sales": 4800, "transactions": 48},
    {"day": "Thu", "sales": 6100, "transactions": 61},
    {"day": "Fri", "sales": 7500, "transactions": 75},
    {"day": "Sat", "sales": 8200, "transactions": 82},
    {"day": "Sun", "sales": 6800, "transactions": 68},
]

CATEGORY_SHARE: List[Dict] = [
    {"name": "Drinks", "value": 35},
    {"name": "Snacks", "value": 25},
    {"name": "Canned Foods", "value": 20},
    {"name": "Fresh Foods", "value": 15},
    {"name": "Dairy", "value": 5},
]

MONTHLY_REVENUE: List[Dict] = [
    {"month": "Jan", "revenue": 125000},
    {"month": "Feb", "revenue": 138000},
    {"month": "Mar", "revenue": 145000},
    {"month": "Apr", "revenue": 152000},
    {"month": "May", "revenue": 148000},
    {"month": "Jun", "revenue": 165000},
]

SUMMARY_CARDS: List[Dict] = [
    {"title": "Total Revenue", "value": "$165,234", "note": "+12.5% from last month"},
    {"title": "Transactions", "value": "1,563", "note": "+8.2% from last week"},
    {"title": "Average Order", "value": "$45.67", "note": "+3.1% from last month"},
    {"title": "Customers", "value": "892", "note": "+15.3% from last month"},
]


def admin_login(username: str, password: str) -> bool:
    """Demo credential check for the admin area."""
    return (username or "").strip() == ADMIN_USERNAME and password == ADMIN_PASSWORD


def bar(value: int, maximum: int, width: int = 20) -> str:
    """Text bar scaled to width, for charts rendered in Markdown."""
    if maximum <= 0 or value <= 0:
        return ""
    return "█" * max(1, round(width * value / maximum))


def weekly_sales_markdown() -> str:
    peak = max(d["sales"] for d in DAILY_SALES)
    rows = [
        f"| {d['day']} | ${d['sales']:,} | {d['transactions']} | {bar(d['sales'], peak)} |"
        for d in DAILY_SALES
    ]
    return "\n".join(
        [
            "#### Daily Sales (this week)",
            "",
            "| Day | Sales | Transactions | |",
            "|:---|---:|---:|:---|",
            *rows,
        ]
    )


def category_markdown() -> str:
    rows = [
        f"| {c['name']} | {c['value']}% | {bar(c['value'], 100)} |"
        for c in CATEGORY_SHARE
    ]
    return "\n".join(
        ["#### Sales by Category", "", "| Category | Share | |", "|:---|---:|:---|", *rows]
    )


def monthly_markdown() -> str:
    peak = max(m["revenue"] for m in MONTHLY_REVENUE)
    rows = [
        f"| {m['month']} | ${m['revenue']:,} | {bar(m['revenue'], peak)} |"
        for m in MONTHLY_REVENUE
    ]
    return "\n".join(
        ["#### Monthly Revenue", "", "| Month | Revenue | |", "|:---|---:|:---|", *rows]
    )


def dashboard_markdown() -> str:
    cards = "\n".join(
        f"- **{c['title']}:** {c['value']} _({c['note']})_" for c in SUMMARY_CARDS
    )
    return "\n\n".join(
        [
            "### Analytics Dashboard",
            cards,
            weekly_sales_markdown(),
            category_markdown(),
            monthly_markdown(),
        ]
    )
