"""Global pytest configuration."""

import os

# No real provider or database for tests; set before any tripgen import
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("INVOKE_TOKEN", "test-invoke-token")
