class HandlebarsCliConfigError(ValueError):
    """
    Error raised when there is a problem with the handlebars-cli configuration.
    """
