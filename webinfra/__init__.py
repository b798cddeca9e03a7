"""Deploy and report on the App Service infrastructure through the Azure CLI."""

__version__ = "0.1.0"
