"""
Business modules of the job financial lifecycle engine.

Each subpackage follows the same layout: ``models.py`` (frozen DTOs and
enums), ``orm.py`` (SQLAlchemy persistence), ``workflows.py`` (declared
status transitions, where the entity has a lifecycle) and ``service.py``
(the operations, which own their transaction boundary).

Subpackages are imported explicitly by callers; nothing is imported here.
"""
