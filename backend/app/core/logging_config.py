import logging
import os
import sys
from datetime import datetime
from app.core.config import settings

# create logs directory if it doesn't exist
os.makedirs(settings.LOG_DIR, exist_ok=True)

# configure structured logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(os.path.join(settings.LOG_DIR, f'app_{datetime.now().strftime("%Y%m%d")}.log'), mode='a')
    ]
)

def get_logger(name: str) -> logging.Logger:
    """get a configured logger instance"""
    return logging.getLogger(name)
