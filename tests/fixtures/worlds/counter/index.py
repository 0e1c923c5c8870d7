state = {'count': 0}
items = []


def increment():
    state['count'] += 1
    return state['count']
