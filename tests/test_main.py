import threading
import unittest
from unittest import mock

from botocore.exceptions import NoRegionError, ProfileNotFound

import ecs_fakes
from snitch.config import Config
from snitch.main import run, lambda_handler, arm_deadline


def make_config(publish=False, namespace='Collector/Test'):
    return Config(namespace=namespace, publish=publish, max_workers=2, region='us-east-1', sso_profile=None)


def make_wrapper(ecs, cloudwatch):
    aws_wrapper = mock.MagicMock()
    aws_wrapper.create_aws_client.side_effect = lambda service_name: {'ecs': ecs, 'cloudwatch': cloudwatch}[service_name]
    return aws_wrapper


class TestRun(unittest.TestCase):
    """Tests for a whole measurement pass."""

    def test_publish(self):
        ecs = ecs_fakes.fake_ecs()
        cloudwatch = mock.MagicMock()

        summary = run(make_config(publish=True), make_wrapper(ecs, cloudwatch))

        self.assertTrue(cloudwatch.put_metric_data.called)
        self.assertEqual(summary['clusters'], 3)
        self.assertEqual(summary['measured'], 3)
        self.assertEqual(summary['metrics'], 12)
        self.assertEqual(summary['published'], 12)
        self.assertEqual([batch['status'] for batch in summary['batches']], ['published'])

    def test_dry_run(self):
        ecs = ecs_fakes.fake_ecs()
        cloudwatch = mock.MagicMock()
        aws_wrapper = make_wrapper(ecs, cloudwatch)

        summary = run(make_config(publish=False), aws_wrapper)

        cloudwatch.put_metric_data.assert_not_called()
        aws_wrapper.create_aws_client.assert_called_once_with('ecs')
        self.assertEqual(summary['metrics'], 12)
        self.assertEqual(summary['published'], 0)

    def test_everything_fails(self):
        ecs = ecs_fakes.fake_ecs()
        ecs.paginators['list_clusters'] = ecs_fakes.paginator([], error=ecs_fakes.client_error('ListClusters'))
        cloudwatch = mock.MagicMock()

        summary = run(make_config(publish=True), make_wrapper(ecs, cloudwatch))

        self.assertEqual(summary['clusters'], 0)
        self.assertIn('AccessDeniedException', summary['discovery_error'])
        cloudwatch.put_metric_data.assert_not_called()

    def test_no_region(self):
        aws_wrapper = mock.MagicMock()
        aws_wrapper.create_aws_client.side_effect = NoRegionError()

        summary = run(make_config(publish=True), aws_wrapper)

        self.assertEqual(summary['clusters'], 0)
        self.assertEqual(summary['client_error'], 'You must specify a region.')
        self.assertEqual(summary['batches'], [])

    @mock.patch('snitch.main.AWSWrapper')
    def test_unknown_profile(self, mock_wrapper):
        mock_wrapper.side_effect = ProfileNotFound(profile='ops')

        summary = run(make_config())

        self.assertIn('ops', summary['client_error'])
        self.assertEqual(summary['metrics'], 0)

    def test_cloudwatch_client_error_keeps_measurements(self):
        aws_wrapper = mock.MagicMock()
        aws_wrapper.create_aws_client.side_effect = [ecs_fakes.fake_ecs(), NoRegionError()]

        summary = run(make_config(publish=True), aws_wrapper)

        self.assertEqual(summary['measured'], 3)
        self.assertEqual(summary['metrics'], 12)
        self.assertEqual(summary['published'], 0)
        self.assertEqual(summary['client_error'], 'You must specify a region.')

    @mock.patch('snitch.main.AWSWrapper')
    def test_creates_wrapper_from_config(self, mock_wrapper):
        mock_wrapper.return_value = make_wrapper(ecs_fakes.fake_ecs(cluster_arns=[]), mock.MagicMock())

        run(make_config())

        mock_wrapper.assert_called_once_with(sso_profile_name=None, region_name='us-east-1', max_pool_connections=2)


class TestLambdaHandler(unittest.TestCase):
    """Tests for the Lambda entry point."""

    @mock.patch('snitch.main.run')
    def test_event_config(self, mock_run):
        mock_run.return_value = {'clusters': 0}

        response = lambda_handler({'config': {'namespace': 'Event/Namespace', 'publish': True}}, None)

        self.assertEqual(response, {'clusters': 0})
        config = mock_run.call_args.args[0]
        self.assertEqual(config.namespace, 'Event/Namespace')
        self.assertTrue(config.publish)
        self.assertIsInstance(mock_run.call_args.kwargs['cancel'], threading.Event)

    @mock.patch('snitch.main.run')
    def test_error(self, mock_run):
        mock_run.side_effect = RuntimeError('no credentials')

        response = lambda_handler({}, None)

        self.assertEqual(response, {'statusCode': 500, 'error': 'no credentials'})

    def test_invalid_config(self):
        response = lambda_handler({'config': {'max_workers': -1}}, None)

        self.assertEqual(response['statusCode'], 500)


class TestArmDeadline(unittest.TestCase):

    def test_no_lambda_context(self):
        cancel = threading.Event()

        self.assertIsNone(arm_deadline({}, cancel))
        self.assertFalse(cancel.is_set())

    def test_deadline_too_close(self):
        cancel = threading.Event()
        context = mock.MagicMock()
        context.get_remaining_time_in_millis.return_value = 5000

        self.assertIsNone(arm_deadline(context, cancel))
        self.assertTrue(cancel.is_set())

    def test_timer_sets_cancel(self):
        cancel = threading.Event()
        context = mock.MagicMock()
        context.get_remaining_time_in_millis.return_value = 10050

        timer = arm_deadline(context, cancel)

        self.assertIsNotNone(timer)
        self.assertTrue(cancel.wait(timeout=2))

    def test_timer_not_fired_early(self):
        cancel = threading.Event()
        context = mock.MagicMock()
        context.get_remaining_time_in_millis.return_value = 900000

        timer = arm_deadline(context, cancel)
        timer.cancel()

        self.assertFalse(cancel.is_set())


if __name__ == '__main__':
    unittest.main()
