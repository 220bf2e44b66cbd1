import uvicorn

from lms.config import settings

if __name__ == "__main__":
    uvicorn.run("lms.main:app", host="127.0.0.1", port=8000, reload=True, log_level=settings.LOG_LEVEL.lower())
