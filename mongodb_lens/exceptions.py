class MongoLensError(Exception):
    """Base exception for MongoDB Lens."""
    pass

class ConfigurationError(MongoLensError):
    """Exception raised for errors in configuration or connection setup."""
    pass

class SchemaError(MongoLensError):
    """Exception raised during sampling or schema inference."""
    pass

class CollectionNotFoundError(SchemaError):
    """The target collection does not exist."""
    pass

class EmptyCollectionError(SchemaError):
    """Sampling returned no documents, so there is nothing to infer."""
    pass

class ValidationError(MongoLensError):
    """Exception raised for invalid tool arguments."""
    pass

class AnalysisError(MongoLensError):
    """Exception raised when index or query information cannot be gathered."""
    pass
