"""
Configuration for the leaderboard ETL.

Static settings live in 'config.ini' next to this module. Database connection parameters are read
from environment variables, optionally loaded from a '.env' file by `python-dotenv`.
"""

from configparser import ConfigParser
import os

from dotenv import load_dotenv


load_dotenv()


DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT")
DB_NAME = os.getenv("DB_NAME")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")


BASE_DIR = os.path.dirname(os.path.abspath(__file__))


config = ConfigParser()
config.read(os.path.join(BASE_DIR, "config.ini"))


SOURCE_API_URL = config["SOURCE"]["SOURCE_API_URL"]
SOURCE_PAGE = config["SOURCE"]["SOURCE_PAGE"]


CATALOG_SEARCH_URL = config["API"]["CATALOG_SEARCH_URL"]
CATALOG_COUNTRY = config["API"]["CATALOG_COUNTRY"]


MAX_POSITION = config.getint("SCORING", "MAX_POSITION")
# Editions with fewer ranked songs than this are treated as still being published
PARTIAL_EDITION_THRESHOLD = config.getint("SCORING", "PARTIAL_EDITION_THRESHOLD")


SNAPSHOT_TTL_HOURS = config.getfloat("CACHE", "SNAPSHOT_TTL_HOURS")
STORAGE_BACKEND = config["CACHE"]["STORAGE_BACKEND"]
STORAGE_DIR = config["CACHE"]["STORAGE_DIR"]


if not os.path.isabs(STORAGE_DIR):
    STORAGE_DIR = os.path.join(BASE_DIR, STORAGE_DIR)


BASE_DELAY_SECONDS = config.getfloat("RETRY", "BASE_DELAY_SECONDS")
BACKOFF_FACTOR = config.getfloat("RETRY", "BACKOFF_FACTOR")
MAX_DELAY_SECONDS = config.getfloat("RETRY", "MAX_DELAY_SECONDS")
JITTER_SECONDS = config.getfloat("RETRY", "JITTER_SECONDS")
MAX_ATTEMPTS = config.getint("RETRY", "MAX_ATTEMPTS")


LOGGING_LEVEL = config["LOGGING"]["LOGGING_LEVEL"]
