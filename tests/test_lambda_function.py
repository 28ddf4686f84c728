import unittest
from unittest import mock

import lambda_function


class TestHandler(unittest.TestCase):

    @mock.patch('lambda_function.lambda_handler')
    def test_delegates_to_lambda_handler(self, mock_lambda_handler):
        mock_lambda_handler.return_value = {'clusters': 2}
        event = {'config': {'publish': True}}
        context = mock.MagicMock()

        self.assertEqual(lambda_function.handler(event, context), {'clusters': 2})
        mock_lambda_handler.assert_called_once_with(event, context)


if __name__ == '__main__':
    unittest.main()
