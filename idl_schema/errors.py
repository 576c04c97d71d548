class IdlSchemaError(ValueError):
    """Base class for every failure raised by idl_schema."""


class IdlFormatError(IdlSchemaError):
    """The IDL document is missing keys, has wrong JSON types or unknown tags."""


class ResolutionError(IdlSchemaError):
    """A named type or discriminator could not be resolved consistently."""


class DecodeError(IdlSchemaError):
    """Raw bytes do not match the schema they are decoded against."""


class DiscriminatorNotFoundError(DecodeError):
    pass


class SchemaCodecError(DecodeError):
    """Persisted schema bytes are malformed."""


class SchemaRoundTripError(IdlSchemaError):
    """A compiled program index did not survive its own binary round trip."""


class ConfigError(IdlSchemaError):
    pass
