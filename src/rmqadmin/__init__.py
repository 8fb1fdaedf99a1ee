"""rmqadmin -- a command-line client for the RabbitMQ HTTP management API.

Commands are written as ``<verb> <resource>`` or ``<resource> <verb>``; both
spellings dispatch to the same handler::

    rmqadmin list queues --vhost events
    rmqadmin queues list --vhost events
    rmqadmin delete queue --name q1 --idempotently

Connection settings are merged from CLI flags, ``RABBITMQADMIN_*``
environment variables and named node aliases in ``~/.rabbitmqadmin.conf``.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Connection profile resolution and config file loading.
    exceptions: Error taxonomy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
    pagination: Paged listing of large collections.
    idempotency: NotFound suppression for idempotent deletes.
"""

__version__ = "0.4.0"
