"""LedgerDAO command line tools."""
