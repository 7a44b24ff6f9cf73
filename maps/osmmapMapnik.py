title = 'OpenStreetMap'
format = 'png'
proj = 3857
key = 'o'

_SERVERS = 'abc'


def url(x, y, zoom):
    server = _SERVERS[(x + y) % len(_SERVERS)]
    return f'https://{server}.tile.openstreetmap.org/{zoom}/{x}/{y}.png'
