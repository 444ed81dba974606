import uvicorn

from dlingo.app import create_app
from dlingo.config import settings

app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
