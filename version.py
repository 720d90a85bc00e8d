__version__ = "1.0.0"
CODENAME = "Tema 16"
