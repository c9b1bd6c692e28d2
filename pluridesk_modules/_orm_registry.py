"""
Imports every ORM module so that ``Base.metadata`` knows all tables.

Called by ``pluridesk_kernel.db.engine.create_tables`` before
``create_all``.
"""


def import_all_orm_models() -> None:
    import pluridesk_kernel.services.sequence_service  # noqa: F401
    import pluridesk_modules.expense.orm  # noqa: F401
    import pluridesk_modules.invoicing.orm  # noqa: F401
    import pluridesk_modules.jobs.orm  # noqa: F401
    import pluridesk_modules.outsourcing.orm  # noqa: F401
    import pluridesk_modules.parties.orm  # noqa: F401
    import pluridesk_modules.purchase_orders.orm  # noqa: F401
    import pluridesk_modules.quotes.orm  # noqa: F401
