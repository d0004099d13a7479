"""Infrastructure layer: row stores, import/export adapter and messaging"""
