"""
Service layer: record stores, import/export, migration and the request facade.
"""
