"""
querybench — connection reuse versus pooled engine latency benchmark.

Sub-packages:
    core       — aggregation engine, settings, logging, errors, connections
    data       — resilient statement source and the two query strategies
    execution  — probe, scheduler, reporting and the benchmark driver
    cli        — ``querybench`` command line entry point
"""

__version__ = "0.1.0"
