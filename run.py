"""
Server runner
排行榜服务启动脚本
"""

import uvicorn
from app.core.config import settings


def main():
    options = {
        "host": settings.HOST,
        "port": settings.PORT,
        "access_log": True,
        "log_level": settings.LOG_LEVEL.lower(),
    }
    # reload 与 workers 互斥
    if settings.DEBUG:
        options["reload"] = True
    else:
        options["workers"] = settings.WORKERS

    uvicorn.run("app.main:app", **options)


if __name__ == "__main__":
    main()
