from .metadata_loader import MetadataLoader
