"""
runlength.core
==============

Infrastructure shared by every part of the package: typed names, error
types, the abstract component interfaces, and the run-length ledger.
"""
