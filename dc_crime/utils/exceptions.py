class DCCrimeException(Exception):
    """Base Exception Class"""
    pass
class DataLoadError(DCCrimeException):
    """Error class for when the incident extract cannot be loaded as a whole"""
    pass
class ReferenceDataError(DataLoadError):
    """Error for a missing census table or a missing target region row"""
    pass
class DataProcessingError(DCCrimeException):
    """Error for Processing the Data"""
    pass
class ConfigError(DCCrimeException):
    """Config Error"""
    pass
