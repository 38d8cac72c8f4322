from .mongo_driver import MongoDriver


class DatabaseManager:
    _instance = None

    def __init__(self, settings):
        self.mongo = MongoDriver(
            settings.MONGODB_URL,
            server_selection_timeout_ms=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        )

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from mongo_repository.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Forget the singleton (tests, or reconnecting with new settings)."""
        cls._instance = None
