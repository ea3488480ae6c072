"""AWS Lambda entry point.

Mangum translates API Gateway events into ASGI so the proxy app runs
unchanged on Lambda. Set API_GATEWAY_BASE_PATH when the API is served from
a stage or custom base path.
"""

from mangum import Mangum

from src.config.settings import get_settings
from src.main import app

handler = Mangum(app, lifespan="off", api_gateway_base_path=get_settings().api_gateway_base_path)
