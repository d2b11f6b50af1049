from webhook_wave.serve import main

main()
