from fastapi.templating import Jinja2Templates

from .catalog import ContentCatalog
from .config import settings

templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)
catalog = ContentCatalog(settings.CONTENT_DIR)
