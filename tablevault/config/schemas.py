"""Configuration file schemas for TableVault."""

TABLE_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "pattern": r"^[A-Za-z_][A-Za-z0-9_]*$",
            "description": "Table name in the relational store",
        },
        "conflict_key": {
            "type": "string",
            "minLength": 1,
            "description": "Column used as the upsert identifier",
        },
        "critical": {
            "type": "boolean",
            "default": False,
            "description": "Include the table in critical (lightweight) backups",
        },
    },
    "required": ["name", "conflict_key"],
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "tablevault": {
            "type": "object",
            "properties": {
                "version": {
                    "type": "string",
                    "pattern": r"^\d+\.\d+\.\d+$",
                },
            },
            "additionalProperties": False,
        },
        "store": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "minLength": 1,
                    "description": "SQLAlchemy database URL, or memory:// for an in-process store",
                },
                "page_size": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": False,
        },
        "backup": {
            "type": "object",
            "properties": {
                "directory": {"type": "string", "minLength": 1},
                "max_backup_count": {"type": "integer", "minimum": 0},
                "format_version": {"type": "string", "minLength": 1},
                "batch_size": {"type": "integer", "minimum": 1},
                "schedule": {
                    "type": "string",
                    "description": "Cron expression for scheduled full backups",
                },
                "tables": {
                    "type": "array",
                    "items": TABLE_SCHEMA,
                },
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "events_file": {"type": ["string", "null"]},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}
