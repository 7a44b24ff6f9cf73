title = 'OpenTopoMap'
format = 'png'
proj = 3857
key = 't'


def url(x, y, zoom):
    return f'https://tile.opentopomap.org/{zoom}/{x}/{y}.png'
