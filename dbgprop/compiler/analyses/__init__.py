from .debug_location import LocationResolver
