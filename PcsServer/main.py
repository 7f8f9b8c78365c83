import os, sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from typing import Optional

import uvicorn
from colorama import init, Fore, Style
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from pcscore.command_execution.pcs_runner import PcsRunner
from pcscore.command_routing.pcs_dispatcher import CommandDispatcher

from . import config
from .logutil import get_logger
from .websocket_pcs import Relay, router as pcs_ws_router
from .static import router as static_router

logger = get_logger("backend.main", file_basename="pcsweb")

brightgreen = Style.BRIGHT + Fore.GREEN
brightyellow = Style.BRIGHT + Fore.YELLOW
reset = Style.RESET_ALL


def create_app(*,
               pcs_path: Optional[str] = None,
               download_dir: Optional[str] = None,
               download_retry: Optional[int] = None,
               static_dir: Optional[str] = None,
               index_file: Optional[str] = None) -> FastAPI:
    pcs_path = pcs_path or config.PCS_PATH
    download_dir = download_dir or config.DOWNLOAD_DIR
    static_dir = static_dir or config.STATIC_DIR

    app = FastAPI(title="BaiduPCS-Go Web Panel", version="1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    dispatcher = CommandDispatcher(
        PcsRunner(pcs_path),
        download_dir,
        download_retry=config.DOWNLOAD_RETRY if download_retry is None else download_retry,
    )
    app.state.relay = Relay(dispatcher)
    app.state.index_file = index_file or config.INDEX_FILE

    @app.on_event("startup")
    def _startup():
        os.makedirs(download_dir, exist_ok=True)
        logger.info("startup", extra={"pcs_path": pcs_path, "download_dir": download_dir})

    # Routers
    app.include_router(pcs_ws_router, tags=["websocket"])
    app.include_router(static_router)
    # Mounted last so the routes above win on "/"
    if os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app


app = create_app()


def run():
    init()
    print(f"{brightgreen}[*] BaiduPCS-Go web panel started{reset}")
    print(f"[*] HTTP:       http://localhost:{config.PORT}")
    print(f"[*] WebSocket:  ws://localhost:{config.PORT}")
    print(f"[*] Downloads:  {config.DOWNLOAD_DIR}")
    print(f"{brightyellow}[!] Make sure the pcs tool is installed at {config.PCS_PATH}{reset}")
    uvicorn.run("PcsServer.main:app", host=config.HOST, port=config.PORT, reload=False)


if __name__ == "__main__":
    run()
