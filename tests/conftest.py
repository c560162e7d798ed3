"""Test environment: cheap bcrypt rounds and fixed JWT secrets, set before shiftpay settings load."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
