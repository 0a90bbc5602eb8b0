"""Schema migration units for the gallery store.

Each module exposes a single ``MIGRATION`` constant of type
:class:`~focalpoint.services.migration_runner.MigrationUnit`. Modules are
discovered by :func:`~focalpoint.services.migration_runner.load_units` and
applied in unit-name order, never in module or input order. Shipped units
are never edited; fixes go into a new unit.
"""
