from alembic.operations.ops import (
    DropColumnOp,
    DropTableOp,
    AlterColumnOp,
    DropConstraintOp,
    DropIndexOp,
)


# Booking history is never deleted; these would lose or unprotect it
DANGEROUS_OPS = (
    DropColumnOp,
    DropTableOp,
    DropConstraintOp,
    DropIndexOp,
)


class UnsafeMigration(RuntimeError):
    pass


def check_migration_safety(ops_container):
    """
    Recursively inspect Alembic operations for destructive changes.

    Raises UnsafeMigration for drops (tables, columns, constraints such as
    the unique locator / guest email ones, and indexes) and for columns
    switched from nullable to NOT NULL.
    """
    for op in getattr(ops_container, "ops", []):
        if isinstance(op, DANGEROUS_OPS):
            raise UnsafeMigration(
                f"Unsafe migration detected: {op.__class__.__name__}, manual review required."
            )

        if isinstance(op, AlterColumnOp):
            if op.modify_nullable is False and op.existing_nullable:
                raise UnsafeMigration(
                    f"Making column '{op.column_name}' NOT NULL, ensure data is clean first."
                )

        # Batch and table-level containers nest their own ops
        if hasattr(op, "ops"):
            check_migration_safety(op)
