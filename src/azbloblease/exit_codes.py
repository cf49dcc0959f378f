from __future__ import annotations

from typing import Mapping

INVALID_ERROR_CODE = 10
INTERRUPTED = 130

ERROR_CODES: Mapping[str, int] = {
    "InvalidErrorCode": INVALID_ERROR_CODE,  # unknown error name passed to error_code()
    "ErrInvalidArgument": 100,
    "ErrInvalidArgumentMissingResourceGroupName": 110,
    "ErrInvalidArgumentMissingAccountName": 120,
    "ErrInvalidArgumentMissingContainer": 130,
    "ErrInvalidArgumentInvalidLeaseDuration": 140,  # 15-60 seconds
    "ErrInvalidArgumentMissingLeaseID": 150,
    "ErrInvalidArgumentMissingSubscriptionID": 160,
    "ErrInvalidArgumentRetryCount": 170,  # at least 1
    "ErrInvalidArgumentWaitTimeAcquire": 180,  # 0-59 seconds
    "ErrInvalidCloudType": 200,
    "ErrCloudConfigFileOnlyForCustomCloud": 210,
    "ErrCloudConfigFileRequiredForCustomCloud": 220,
    "ErrCloudConfigFileNotFound": 230,
    "ErrAuthentication": 300,
    "ErrInvalidArgumentIterationsCount": 500,  # at least 1
    "ErrInvalidArgumentWaitTime": 501,  # 1-59 seconds
}


def error_code(name: str) -> int:
    return ERROR_CODES.get(name, INVALID_ERROR_CODE)
