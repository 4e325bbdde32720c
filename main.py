import logging

import uvicorn

from zapflow import conf

logging.getLogger().handlers.clear()
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(message)s",
    datefmt="%H:%M:%S",
)

if __name__ == "__main__":
    logging.info("Starting zap server on %s:%d", conf.HOST, conf.PORT)
    uvicorn.run("zap_server.main:app", host=conf.HOST, port=conf.PORT)
