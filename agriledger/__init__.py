# agriledger/__init__.py
