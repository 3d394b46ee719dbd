"""Run the Chaka mediator: python -m chaka"""

import uvicorn

from chaka.config import load_config

config = load_config()
uvicorn.run("chaka.app:create_app", host=config.host, port=config.port, factory=True)
