"""Console scripts: ``webinfra-deploy``, ``webinfra-oidc``, ``webinfra-env``."""
