from ..shared import registry

NAME = 'beta'
registry.append(NAME)
