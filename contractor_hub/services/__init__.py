# contractor_hub/services/__init__.py
