from playlist_relay.app import create_app
from playlist_relay.config_manager import load_settings


if __name__ == '__main__':
    settings = load_settings()
    if not settings.is_configured():
        print('Warning: Spotify or OpenAI credentials are missing; some routes will return 503.')

    print(f'Starting AI Playlist Relay on http://{settings.host}:{settings.port} ...')
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port)
