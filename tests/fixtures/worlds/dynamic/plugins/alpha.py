from ..shared import registry

NAME = 'alpha'
registry.append(NAME)
