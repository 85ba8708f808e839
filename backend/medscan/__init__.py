"""
Medicine Identification Pipeline

Two-call vision-model pipeline for medicine packaging analysis.
Pipeline: TOKEN CHECK → FIRST CALL → SIGNAL PARSE → REGISTRY → SECOND CALL → FINAL PARSE → DEBIT
"""

__version__ = "1.0.0"
__author__ = "Medicine Pipeline Team"
