PREFIX = 'Hello'
_private = 'not exported'


def greet(name):
    return f"{PREFIX}, {name}!"
