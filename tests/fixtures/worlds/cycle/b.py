from . import a

calls.append('b')
NAME = 'b'


def peer_name():
    return a.NAME
