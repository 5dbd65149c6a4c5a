# core/init.py - Startup preparation: data and log folders, database tables
import os

from core.db import init_db
from core.settings import settings

def ensure_folders():
    for folder in (settings.DATABASE_FOLDER, settings.LOG_DIR):
        os.makedirs(folder, exist_ok=True)

def run_all():
    ensure_folders()
    init_db()
