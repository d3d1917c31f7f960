import uvicorn

from . import settings

if __name__ == "__main__":
    uvicorn.run("blog_api.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
