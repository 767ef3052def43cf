import os
import tempfile

# settings are read at import time, so point them at throwaway resources first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "finboard-test-logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
