"""Paramiko SSH utilities for the in-process SSH client."""

import logging
import time
from typing import Optional

import paramiko

from .process import CommandOutput

POLL_INTERVAL = 0.05  # Seconds between exit-status checks


class SSHHelper:
    """Helper class for SSH operations."""

    @staticmethod
    def create_client(
        host: str,
        port: int,
        username: Optional[str],
        timeout: float,
        key_file: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ) -> paramiko.SSHClient:
        """
        Create SSH client with key or agent authentication.

        Never prompts: password authentication is not attempted and unknown
        host keys are accepted for this transient check.

        Args:
            host: Remote host
            port: SSH port
            username: Remote user (local user when None)
            timeout: Connect, banner and auth timeout in seconds
            key_file: Optional private key path
            logger: Optional logger instance

        Returns:
            paramiko.SSHClient: Connected client

        Raises:
            paramiko.AuthenticationException: If no key is accepted
            paramiko.SSHException: On protocol errors
            OSError: If the host cannot be reached
        """
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            if logger:
                logger.debug(f"Connecting to {host}:{port} as {username or '<local user>'}")

            client.connect(
                hostname=host,
                port=port,
                username=username,
                key_filename=key_file,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                allow_agent=True,
                look_for_keys=True
            )

            if logger:
                logger.debug(f"Successfully connected to {host}")
            return client

        except Exception as e:
            if logger:
                logger.debug(f"Failed to connect to {host}: {e}")
            client.close()
            raise

    @staticmethod
    def exec_command(
        client: paramiko.SSHClient,
        command: str,
        timeout: float = 30,
        logger: Optional[logging.Logger] = None
    ) -> CommandOutput:
        """
        Execute command on SSH client.

        Args:
            client: Connected paramiko.SSHClient
            command: Command to execute
            timeout: Channel timeout in seconds
            logger: Optional logger instance

        Returns:
            CommandOutput: Remote exit status and output

        Raises:
            TimeoutError: If the command has not exited within ``timeout``
        """
        if logger:
            logger.debug(f"Executing remote command: {command}")

        stdin, stdout, stderr = client.exec_command(command, timeout=timeout)
        stdin.close()

        # recv_exit_status() has no deadline; poll instead.
        # A closed channel also reports ready, so closing the client unblocks this loop.
        channel = stdout.channel
        deadline = time.monotonic() + timeout
        while not channel.exit_status_ready():
            if time.monotonic() >= deadline:
                channel.close()
                raise TimeoutError(f"Remote command did not exit within {timeout:g}s")
            time.sleep(POLL_INTERVAL)

        exit_code = channel.recv_exit_status()

        return CommandOutput(
            returncode=exit_code,
            stdout=stdout.read().decode('utf-8', errors='replace'),
            stderr=stderr.read().decode('utf-8', errors='replace'),
        )

    @staticmethod
    def close_client(client: Optional[paramiko.SSHClient], logger: Optional[logging.Logger] = None) -> None:
        """
        Close SSH client connection.

        Args:
            client: paramiko.SSHClient instance
            logger: Optional logger instance
        """
        try:
            if client:
                client.close()
                if logger:
                    logger.debug("SSH connection closed")
        except Exception as e:
            if logger:
                logger.warning(f"Error closing SSH connection: {e}")
