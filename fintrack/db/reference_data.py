from datetime import datetime
from sqlalchemy.orm import Session

from fintrack.db.core import CategoryDB, CategoryType, SecurityDB, query_active
from fintrack.logging_config import get_logger

logger = get_logger(__name__)


# Template categories (no owner) are copied to every user on registration
TEMPLATE_CATEGORIES = {
    CategoryType.EXPENSE: [
        "Food & Dining", "Transportation", "Shopping", "Entertainment", "Bills & Utilities",
        "Healthcare", "Education", "Travel", "Personal Care", "Home & Garden",
        "Insurance", "Taxes", "Miscellaneous",
    ],
    CategoryType.INCOME: [
        "Salary", "Freelance", "Investment", "Business", "Rental", "Gift", "Other Income",
    ],
}

COMMON_SECURITIES = [
    ("RELIANCE.NS", "Reliance Industries Limited"),
    ("TCS.NS", "Tata Consultancy Services Limited"),
    ("HDFCBANK.NS", "HDFC Bank Limited"),
    ("INFY.NS", "Infosys Limited"),
    ("HINDUNILVR.NS", "Hindustan Unilever Limited"),
    ("ICICIBANK.NS", "ICICI Bank Limited"),
    ("KOTAKBANK.NS", "Kotak Mahindra Bank Limited"),
    ("BHARTIARTL.NS", "Bharti Airtel Limited"),
    ("ITC.NS", "ITC Limited"),
    ("SBIN.NS", "State Bank of India"),
]


def seed_reference_data(db: Session) -> None:
    """Insert template categories and common securities that are not there yet."""
    existing_templates = {
        (c.category_name, c.category_type)
        for c in query_active(db, CategoryDB).filter(CategoryDB.user_id.is_(None)).all()
    }
    for category_type, names in TEMPLATE_CATEGORIES.items():
        for name in names:
            if (name, category_type) not in existing_templates:
                db.add(CategoryDB(user_id=None, category_name=name, category_type=category_type,
                                  created_at=datetime.utcnow()))

    known_tickers = {s.ticker_symbol for s in db.query(SecurityDB).all()}
    for ticker, name in COMMON_SECURITIES:
        if ticker not in known_tickers:
            db.add(SecurityDB(ticker_symbol=ticker, security_name=name, asset_type="Stock",
                              created_at=datetime.utcnow()))

    db.commit()
    logger.info("Reference categories and securities in place")
