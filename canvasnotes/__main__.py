import uvicorn

from canvasnotes.core.config import settings


if __name__ == "__main__":
    uvicorn.run("canvasnotes.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
