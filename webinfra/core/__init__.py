"""Core of webinfra: settings, Azure CLI services, templates and receipts."""
