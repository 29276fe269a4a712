import os


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_set(name: str, default: str) -> frozenset:
    raw = os.getenv(name, default)
    return frozenset(item.strip().lower() for item in raw.split(",") if item.strip())


# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./license_api.db")
RUN_MIGRATIONS = _env_flag("RUN_MIGRATIONS")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-this-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(30 * 24 * 60)))

# ✅ Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_PRICE_MONTHLY = os.getenv("STRIPE_PRICE_MONTHLY")
STRIPE_PRICE_LIFETIME = os.getenv("STRIPE_PRICE_LIFETIME")

# ✅ Licensing policy
ONE_TIME_PACKAGES = _env_set("ONE_TIME_PACKAGES", "lifetime")
REQUIRE_ACTIVE_LICENSE = _env_flag("REQUIRE_ACTIVE_LICENSE", "1")
LICENSE_GRACE_PERIOD = _env_flag("LICENSE_GRACE_PERIOD")
HWID_RESET_COOLDOWN_DAYS = int(os.getenv("HWID_RESET_COOLDOWN_DAYS", "7"))

# ✅ Frontend / CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Package catalogue served by /api/packages. Prices are display values only;
# Stripe price ids decide what is actually charged.
PACKAGES = [
    {
        "id": "monthly",
        "name": "Monthly Subscription",
        "price": 20.00,
        "price_id": STRIPE_PRICE_MONTHLY,
        "billing": "monthly",
        "features": [
            "Hardware-locked authentication",
            "Single device license",
            "Email support",
            "Regular updates",
        ],
    },
    {
        "id": "lifetime",
        "name": "Lifetime Subscription",
        "price": 149.00,
        "price_id": STRIPE_PRICE_LIFETIME,
        "billing": "one-time",
        "features": [
            "Everything in Monthly",
            "Dedicated account manager",
            "Beta access to new features",
            "Lifetime updates",
        ],
    },
]
