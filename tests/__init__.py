import os

# Importing app.main builds tables on the configured engine; keep that in memory.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
