# agenda/workers/__init__.py
"""
Celery background jobs. Nothing is imported eagerly: Celery loads
``agenda.workers.tasks`` through the ``-A`` flag.
"""
__all__: list[str] = ["tasks"]
