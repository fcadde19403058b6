"""
Persistence layer. `storage` is the process-wide DBStorage; create_app()
configures its engine from DATABASE_URL and calls reload().
"""
from models.db_storage import DBStorage

storage = DBStorage()
