__version__ = "0.1.0"

CLIENT_NAME = "toolbox-client-python"
