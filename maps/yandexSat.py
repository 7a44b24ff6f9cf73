title = 'Yandex Satellite'
format = 'jpg'
proj = 3395
key = 'Y'


def url(x, y, zoom):
    server = (x + y) % 4 + 1
    return f'https://sat0{server}.maps.yandex.net/tiles?l=sat&x={x}&y={y}&z={zoom}'
