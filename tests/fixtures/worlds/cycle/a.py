from . import b

calls.append('a')
NAME = 'a'


def peer_name():
    return b.NAME
