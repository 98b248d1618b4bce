"""
Web 服务启动脚本
"""

import os

import uvicorn


def pricepulse_web_main() -> None:
    """启动 FastAPI Web 服务"""

    host = os.getenv("PRICEPULSE_HOST", "127.0.0.1")
    port = int(os.getenv("PRICEPULSE_PORT", "8000"))
    reload = os.getenv("PRICEPULSE_RELOAD", "false").lower() == "true"

    uvicorn.run("pricepulse.web.app:create_app", factory=True, host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    pricepulse_web_main()
