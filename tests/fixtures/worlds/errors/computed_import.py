NAME = 'json'
module = __import__(NAME)
