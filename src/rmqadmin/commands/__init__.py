"""Command definitions for rmqadmin.

:mod:`~rmqadmin.commands.table` holds the static verb/resource table,
:mod:`~rmqadmin.commands.dispatch` turns it into Typer command trees, and
:mod:`~rmqadmin.commands.extras` adds the few commands that do not fit the
table.
"""
