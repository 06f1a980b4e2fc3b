"""Tests for CLI podcast_commands module."""

import sys
from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from podsync.cli.podcast_commands import (
    add_podcast,
    create_parser,
    list_podcasts,
    main,
    remove_podcast,
    show_podcast,
    sync_feeds,
    watch_feeds,
)
from podsync.models import Episode, Podcast, PodcastUpdateInfo, SyncFailure, SyncResult


class TestCreateParser:
    """Tests for create_parser function."""

    def test_has_env_file_argument(self):
        """Test that parser has --env-file argument."""
        parser = create_parser()
        args = parser.parse_args(["--env-file", "/path/.env", "list"])
        assert args.env_file == "/path/.env"

    def test_add_subcommand(self):
        """Test add subcommand parsing."""
        parser = create_parser()
        args = parser.parse_args(
            ["add", "https://example.com/feed.xml", "--image-url", "https://example.com/a.jpg"]
        )
        assert args.command == "add"
        assert args.url == "https://example.com/feed.xml"
        assert args.image_url == "https://example.com/a.jpg"

    def test_show_subcommand(self):
        """Test show subcommand parsing."""
        parser = create_parser()
        args = parser.parse_args(["show", "https://example.com/feed.xml", "--limit", "5"])
        assert args.command == "show"
        assert args.limit == 5

    def test_sync_subcommand(self):
        """Test sync subcommand parsing."""
        parser = create_parser()
        args = parser.parse_args(["sync", "--concurrent", "4"])
        assert args.command == "sync"
        assert args.concurrent == 4

    def test_watch_subcommand(self):
        """Test watch subcommand parsing."""
        parser = create_parser()
        args = parser.parse_args(["watch", "--interval", "15", "--iterations", "2"])
        assert args.command == "watch"
        assert args.interval == 15
        assert args.iterations == 2


class TestMain:
    """Tests for main function."""

    def test_no_command_prints_help(self, capsys):
        """Test that main prints help when no command given."""
        with patch.object(sys, "argv", ["podsync"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_dispatches_command(self):
        """Test main routes to the matching command."""
        with patch.object(sys, "argv", ["podsync", "list"]), patch(
            "podsync.cli.podcast_commands.list_podcasts"
        ) as mock_list, patch("podsync.cli.podcast_commands.Config") as mock_config_class:
            main()

        mock_config_class.assert_called_once_with(env_file=None)
        mock_list.assert_called_once()


class TestCommands:
    """Tests for the individual commands."""

    @pytest.fixture
    def mock_config(self):
        """Create a mock config."""
        config = Mock()
        config.FEED_FETCH_TIMEOUT = 10
        config.FEED_USER_AGENT = "TestAgent/1.0"
        config.SYNC_MAX_CONCURRENT = 1
        return config

    @pytest.fixture
    def mock_repository(self):
        """Patch repository creation and return the mock repository."""
        repository = Mock()
        with patch(
            "podsync.cli.podcast_commands.create_repository_from_config",
            return_value=repository,
        ):
            yield repository

    @pytest.fixture
    def mock_service(self):
        """Patch the sync service class and return its instance."""
        with patch("podsync.cli.podcast_commands.FeedSyncService") as mock_class:
            yield mock_class.return_value

    def test_add_podcast(self, mock_config, mock_repository, mock_service, capsys):
        """Test subscribing prints the stored podcast."""
        mock_service.add_podcast_from_url = AsyncMock(
            return_value=Podcast(feed_url="http://a/feed.xml", title="Show", id=3)
        )
        args = Mock(url="http://a/feed.xml", image_url=None)

        add_podcast(args, mock_config)

        mock_service.add_podcast_from_url.assert_awaited_once_with("http://a/feed.xml", image_url="")
        assert "Subscribed: Show" in capsys.readouterr().out
        mock_repository.close.assert_called_once()

    def test_add_podcast_unreachable(self, mock_config, mock_repository, mock_service, capsys):
        """Test an unloadable feed exits with an error."""
        mock_service.add_podcast_from_url = AsyncMock(return_value=None)
        args = Mock(url="http://a/feed.xml", image_url=None)

        with pytest.raises(SystemExit) as exc_info:
            add_podcast(args, mock_config)

        assert exc_info.value.code == 1
        assert "could not load feed" in capsys.readouterr().out
        mock_repository.close.assert_called_once()

    def test_add_podcast_rejected_by_store(
        self, mock_config, mock_repository, mock_service, capsys
    ):
        """Test a store constraint failure is reported instead of raised."""
        mock_service.add_podcast_from_url = AsyncMock(
            side_effect=IntegrityError(
                "INSERT", {}, Exception("UNIQUE constraint failed: episodes.guid")
            )
        )
        args = Mock(url="http://a/feed.xml", image_url=None)

        with pytest.raises(SystemExit) as exc_info:
            add_podcast(args, mock_config)

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "could not save podcast http://a/feed.xml" in out
        assert "UNIQUE constraint failed" in out
        mock_repository.close.assert_called_once()

    def test_show_podcast(self, mock_config, mock_repository, mock_service, capsys):
        """Test show prints episodes up to the limit."""
        podcast = Podcast(
            feed_url="http://a/feed.xml",
            title="Show",
            episodes=[Episode(guid=f"e{i}", title=f"Episode {i}") for i in range(3)],
        )
        mock_service.get_podcast = AsyncMock(return_value=podcast)

        show_podcast(Mock(url="http://a/feed.xml", limit=2), mock_config)

        out = capsys.readouterr().out
        assert "Episode 1" in out
        assert "Episode 2" not in out

    def test_remove_podcast(self, mock_config, mock_repository, mock_service, capsys):
        """Test remove deletes the stored podcast."""
        podcast = Podcast(feed_url="http://a/feed.xml", title="Show", id=3)
        mock_repository.load_podcast_by_url.return_value = podcast
        mock_service.delete = AsyncMock(return_value=True)

        remove_podcast(Mock(url="http://a/feed.xml"), mock_config)

        mock_service.delete.assert_awaited_once_with(podcast)
        assert "Unsubscribed: Show" in capsys.readouterr().out

    def test_remove_unknown_podcast(self, mock_config, mock_repository, capsys):
        """Test removing an unknown feed exits with an error."""
        mock_repository.load_podcast_by_url.return_value = None

        with pytest.raises(SystemExit):
            remove_podcast(Mock(url="http://a/feed.xml"), mock_config)

        assert "Not subscribed" in capsys.readouterr().out
        mock_repository.close.assert_called_once()

    def test_list_podcasts(self, mock_config, mock_repository, capsys):
        """Test list prints each podcast with its episode count."""
        mock_repository.list_subscribed_podcasts.return_value = [
            Podcast(feed_url="http://a/feed.xml", title="Show", id=1)
        ]
        mock_repository.load_episodes.return_value = [Episode(guid="e1"), Episode(guid="e2")]

        list_podcasts(Mock(), mock_config)

        out = capsys.readouterr().out
        assert "Show" in out
        assert "http://a/feed.xml" in out

    def test_list_podcasts_empty(self, mock_config, mock_repository, capsys):
        """Test list with no subscriptions."""
        mock_repository.list_subscribed_podcasts.return_value = []

        list_podcasts(Mock(), mock_config)

        assert "No podcasts found" in capsys.readouterr().out

    def test_sync_feeds(self, mock_config, mock_repository, mock_service, capsys):
        """Test sync prints the updated podcasts."""
        mock_service.update_all_with_report = AsyncMock(
            return_value=SyncResult(updates=[PodcastUpdateInfo("http://a/feed.xml", "Show", 2)])
        )

        sync_feeds(Mock(concurrent=None), mock_config)

        assert "Show: 2 new episodes" in capsys.readouterr().out
        mock_repository.close.assert_called_once()

    def test_sync_feeds_nothing_new(self, mock_config, mock_repository, mock_service, capsys):
        """Test sync with no updates."""
        mock_service.update_all_with_report = AsyncMock(return_value=SyncResult())

        sync_feeds(Mock(concurrent=None), mock_config)

        assert "No new episodes" in capsys.readouterr().out

    def test_sync_feeds_failure_exit_code(self, mock_config, mock_repository, mock_service, capsys):
        """Test sync exits non-zero when a podcast failed to persist."""
        mock_service.update_all_with_report = AsyncMock(
            return_value=SyncResult(failures=[SyncFailure("http://a/feed.xml", "disk full")])
        )

        with pytest.raises(SystemExit) as exc_info:
            sync_feeds(Mock(concurrent=None), mock_config)

        assert exc_info.value.code == 1
        assert "disk full" in capsys.readouterr().out

    def test_watch_feeds(self, mock_config, capsys):
        """Test watch converts minutes to seconds for the scheduler."""
        with patch(
            "podsync.cli.podcast_commands.run_scheduler", new_callable=AsyncMock
        ) as mock_scheduler:
            mock_scheduler.return_value = 2

            watch_feeds(Mock(interval=5, iterations=2), mock_config)

        _, kwargs = mock_scheduler.call_args
        assert kwargs["interval_seconds"] == 300
        assert kwargs["iterations"] == 2
        assert "Stopped after 2 sync passes" in capsys.readouterr().out
