import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

PCS_PATH = os.getenv("PCS_PATH", "/usr/bin/baidupcs")
DOWNLOAD_DIR = os.path.expanduser(os.getenv("PCS_DOWNLOAD_DIR", "~/Downloads/baidupcs-web"))
DOWNLOAD_RETRY = int(os.getenv("PCS_DOWNLOAD_RETRY", "3"))

HOST = os.getenv("PCSWEB_HOST", "0.0.0.0")
PORT = int(os.getenv("PCSWEB_PORT", "3000"))

STATIC_DIR = os.getenv("PCSWEB_STATIC_DIR", os.path.join(PROJECT_ROOT, "public"))
INDEX_FILE = os.getenv("PCSWEB_INDEX_FILE", os.path.join(PROJECT_ROOT, "index.html"))
