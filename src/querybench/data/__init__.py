"""
querybench.data — statement acquisition and the two query strategies.

    statements        ResilientStatementSource, close_quietly
    connection_reuse  ConnectionReuseStrategy (one raw connection)
    template          PooledTemplateStrategy (pooled SQLAlchemy engine)
    records, sql      row mapping and SQL text shared by both
"""

from querybench.data.connection_reuse import ConnectionReuseStrategy
from querybench.data.records import Record, RecordMeta
from querybench.data.statements import HandleState, ResilientStatementSource, close_quietly
from querybench.data.template import PooledTemplateStrategy

__all__ = [
    "ConnectionReuseStrategy",
    "PooledTemplateStrategy",
    "Record",
    "RecordMeta",
    "HandleState",
    "ResilientStatementSource",
    "close_quietly",
]
