# Deploy: set the environment and run 'uvicorn server:app --host=0.0.0.0 --port=3000'
from crm_checkbot.api import create_app
from crm_checkbot.main import configure_logging

configure_logging()
app = create_app()

__all__ = ["app"]
